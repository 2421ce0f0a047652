"""Single-conversation export path shared by batch runs and auto-sync."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from converters import convert_conversation
from exporters import BaseDownloadSink, TrackingStore, TrackingStoreError
from extractors import ConversationExtractor
from hosts.base_host import PageSnapshot

logger = logging.getLogger('chat_transcript_sync.orchestrator.exporter')


@dataclass
class ItemOutcome:
    """Result of exporting one conversation."""

    success: bool
    conversation_id: Optional[str] = None
    title: Optional[str] = None
    filename: Optional[str] = None
    handle: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'conversation_id': self.conversation_id,
            'title': self.title,
            'filename': self.filename,
            'handle': self.handle,
            'error': self.error
        }


class ConversationExporter:
    """Extracts, formats, submits and tracks the conversation shown in a snapshot."""

    def __init__(
        self,
        extractor: ConversationExtractor,
        sink: BaseDownloadSink,
        store: TrackingStore,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize conversation exporter.

        Args:
            extractor: Conversation extractor
            sink: Download sink receiving Markdown documents
            store: Tracking store updated after each successful submission
            logger: Optional logger instance
        """
        self.extractor = extractor
        self.sink = sink
        self.store = store
        self.logger = logger or logging.getLogger('chat_transcript_sync.orchestrator.exporter')

    async def export_snapshot(self, snapshot: PageSnapshot, label: Optional[str] = None) -> ItemOutcome:
        """
        Export the conversation rendered in a snapshot.

        Args:
            snapshot: Page snapshot with the conversation loaded
            label: Name used in error messages (defaults to the resolved title)

        Returns:
            ItemOutcome; error messages name the conversation by label
        """
        record = self.extractor.extract(snapshot)
        if record is None:
            name = label or snapshot.conversation_id or snapshot.url
            return ItemOutcome(
                success=False,
                conversation_id=snapshot.conversation_id,
                error=f"Failed to extract: {name}"
            )

        name = label or record.title
        filename, document = convert_conversation(record, self.logger)

        result = await self.sink.submit(filename, document, record.id)
        if not result.success:
            return ItemOutcome(
                success=False,
                conversation_id=record.id,
                title=record.title,
                filename=filename,
                error=f"Download failed: {name} - {result.error}"
            )

        if record.can_deduplicate:
            try:
                self.store.add(record.id)
            except TrackingStoreError as e:
                # Document exists but would be exported again next run
                self.logger.error(f"Exported '{name}' but could not record it: {str(e)}")
                return ItemOutcome(
                    success=False,
                    conversation_id=record.id,
                    title=record.title,
                    filename=filename,
                    handle=result.handle,
                    error=f"Tracking not persisted: {name} - {str(e)}"
                )

        self.logger.info(f"Exported: {record.title}")
        return ItemOutcome(
            success=True,
            conversation_id=record.id,
            title=record.title,
            filename=filename,
            handle=result.handle
        )
