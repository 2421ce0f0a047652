"""
Batch orchestrator exporting every conversation listed in the sidebar.

The run sequences: Load sidebar → per conversation {Check → Navigate → Wait →
Extract → Submit → Delay} → Report. Conversations are processed one at a
time in sidebar order and every one of them ends in exactly one of the
exported, skipped or failed counters.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from exporters import BaseDownloadSink, TrackingStore, TrackingStoreError
from extractors import ConversationExtractor, ConversationListLoader, collect_links
from hosts.base_host import BaseHost
from logger import ProgressTracker, log_section
from models import ConversationLink, ExportResult, ProgressEvent, ProgressStatus, SyncSettings
from orchestrator.conversation_exporter import ConversationExporter

logger = logging.getLogger('chat_transcript_sync.orchestrator.batch')

ProgressSink = Callable[[ProgressEvent], None]

# Returned by the per-item path when the run is cancelled mid-load
ITEM_CANCELLED = 'cancelled'


class NoConversationsFoundError(Exception):
    """Raised when the sidebar lists no conversations after loading."""
    pass


class BatchInProgressError(Exception):
    """Raised when a batch run is requested while another one is active."""
    pass


class BatchOrchestrator:
    """Central coordinator for exporting all sidebar conversations."""

    def __init__(
        self,
        host: BaseHost,
        store: TrackingStore,
        sink: BaseDownloadSink,
        extractor: Optional[ConversationExtractor] = None,
        settings: Optional[SyncSettings] = None,
        logger: Optional[logging.Logger] = None,
        exporter: Optional[ConversationExporter] = None
    ):
        """
        Initialize batch orchestrator.

        Args:
            host: Document access and navigation provider
            store: Tracking store used for deduplication
            sink: Download sink receiving Markdown documents
            extractor: Conversation extractor (built from the host selectors by default)
            settings: Timing settings
            logger: Optional logger instance
            exporter: Single-item export path (built from the other parts by default)
        """
        self.host = host
        self.store = store
        self.sink = sink
        self.settings = settings or SyncSettings()
        self.logger = logger or logging.getLogger('chat_transcript_sync.orchestrator.batch')
        self.extractor = extractor or ConversationExtractor(selectors=host.selectors, logger=self.logger)
        self.exporter = exporter or ConversationExporter(self.extractor, sink, store, self.logger)
        self.loader = ConversationListLoader(host, self.settings, self.logger)

        self.in_progress = False
        self.last_result: Optional[ExportResult] = None
        self.last_duration: float = 0.0

    async def run_batch(
        self,
        progress_sink: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ExportResult:
        """
        Export every conversation that has not been exported yet.

        Args:
            progress_sink: Optional callable receiving ProgressEvents
            cancel_event: Optional event; when set, the run stops before the
                next conversation and returns the partial tally

        Returns:
            ExportResult tally

        Raises:
            BatchInProgressError: If another batch is running
            NoConversationsFoundError: If the sidebar is empty after loading
        """
        if self.in_progress:
            raise BatchInProgressError("A batch export is already running")

        self.in_progress = True
        start_time = time.time()
        try:
            result = await self._run(progress_sink, cancel_event)
        finally:
            self.in_progress = False
            self.last_duration = time.time() - start_time

        self.last_result = result
        return result

    async def _run(self, progress_sink: Optional[ProgressSink], cancel_event: Optional[asyncio.Event]) -> ExportResult:
        log_section("Loading conversations")
        self._emit(progress_sink, ProgressEvent(0, 0, 'Loading all conversations...', ProgressStatus.SCROLLING))

        await self.loader.materialize_all(cancel_event)
        links = collect_links(self.host.snapshot(), self.host)

        if not links:
            raise NoConversationsFoundError("No conversations found in sidebar")

        result = ExportResult(total=len(links))
        log_section("Exporting conversations")

        with ProgressTracker(len(links), "conversations") as tracker:
            for index, link in enumerate(links, start=1):
                if self._cancelled(cancel_event):
                    self.logger.warning(f"Batch export cancelled after {result.processed}/{result.total} conversations")
                    result = result.as_cancelled()
                    tracker.cancelled = True
                    break

                self._emit(progress_sink, ProgressEvent(index, len(links), link.title, ProgressStatus.CHECKING))

                try:
                    already_exported = self.store.contains(link.id)
                except TrackingStoreError as e:
                    error = f"Error: {link.title} - {str(e)}"
                else:
                    if already_exported:
                        self.logger.debug(f"Skipping already exported: {link.title}")
                        result = result.with_skipped()
                        tracker.record(link.title, skipped=True)
                        continue

                    error = await self._export_link(link, index, len(links), progress_sink, cancel_event)

                if error is ITEM_CANCELLED:
                    self.logger.warning(f"Batch export cancelled while loading: {link.title}")
                    result = result.as_cancelled()
                    tracker.cancelled = True
                    break

                if error is None:
                    result = result.with_exported()
                    tracker.record(link.title, exported=True)
                else:
                    self.logger.warning(error)
                    result = result.with_failure(error)
                    tracker.record(link.title)

                await asyncio.sleep(self.settings.item_delay)

        self.logger.info(
            f"Batch export finished: {result.exported} exported, {result.skipped} skipped, "
            f"{result.failed} failed of {result.total}"
        )
        return result

    async def _export_link(
        self,
        link: ConversationLink,
        index: int,
        total: int,
        progress_sink: Optional[ProgressSink],
        cancel_event: Optional[asyncio.Event]
    ) -> Optional[str]:
        """
        Navigate to one conversation and export it.

        Returns:
            None on success, ITEM_CANCELLED if the run was cancelled while
            waiting, otherwise the error message for the tally
        """
        try:
            self._emit(progress_sink, ProgressEvent(index, total, link.title, ProgressStatus.LOADING))

            if self.host.snapshot().document.find('a', href=link.href) is None:
                return f"Link not found: {link.title}"

            await self.host.activate(link.href)

            loaded = await self.wait_for_conversation_load(link.id, cancel_event)
            if not loaded:
                if self._cancelled(cancel_event):
                    return ITEM_CANCELLED
                return f"Timeout loading: {link.title}"

            self._emit(progress_sink, ProgressEvent(index, total, link.title, ProgressStatus.EXPORTING))

            outcome = await self.exporter.export_snapshot(self.host.snapshot(), label=link.title)
            return None if outcome.success else outcome.error
        except Exception as e:
            self.logger.error(f"Error exporting {link.title}: {str(e)}", exc_info=True)
            return f"Error: {link.title} - {str(e)}"

    async def wait_for_conversation_load(self, expected_id: str, cancel_event: Optional[asyncio.Event] = None) -> bool:
        """
        Wait until the expected conversation is active and has rendered messages.

        Args:
            expected_id: Conversation id the page should show
            cancel_event: Optional event that aborts the wait

        Returns:
            True once loaded, False on timeout or cancellation
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.load_timeout
        message_selector = self.host.selectors.message_group

        while loop.time() < deadline:
            if self._cancelled(cancel_event):
                return False

            snapshot = self.host.snapshot()
            if snapshot.conversation_id == expected_id and snapshot.count(message_selector) > 0:
                # Let the content finish rendering
                await asyncio.sleep(self.settings.render_settle)
                return True

            await asyncio.sleep(self.settings.poll_interval)

        return False

    def list_conversations(self) -> List[ConversationLink]:
        """Conversation links currently rendered in the sidebar."""
        return collect_links(self.host.snapshot(), self.host)

    def _emit(self, progress_sink: Optional[ProgressSink], event: ProgressEvent) -> None:
        if progress_sink is None:
            return
        try:
            progress_sink(event)
        except Exception as e:
            self.logger.debug(f"Progress sink failed: {str(e)}")

    @staticmethod
    def _cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
        return cancel_event is not None and cancel_event.is_set()
