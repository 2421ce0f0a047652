"""Sync session wiring the host, stores, sink, batch orchestrator and watcher together."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from converters import MarkdownConverter
from exporters import BaseDownloadSink, JsonStateStore, MarkdownExporter, TrackingStore
from extractors import ConversationExtractor
from hosts import BaseHost, HostFactory
from models import ConversationLink, ExportResult, SyncSettings
from orchestrator.batch_orchestrator import BatchInProgressError, BatchOrchestrator, ProgressSink
from orchestrator.change_watcher import ChangeWatcher
from orchestrator.conversation_exporter import ConversationExporter, ItemOutcome

logger = logging.getLogger('chat_transcript_sync.orchestrator.session')

AUTO_SYNC_KEY = 'auto_sync'
DEFAULT_STATE_FILE = './.chat-sync-state.json'


class SyncSession:
    """Owns the long-lived state of one sync process (auto-sync flag, watcher, running batch)."""

    def __init__(
        self,
        host: BaseHost,
        state_store: JsonStateStore,
        sink: BaseDownloadSink,
        settings: Optional[SyncSettings] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize sync session.

        Args:
            host: Document access and navigation provider
            state_store: Persistent state holding the tracking set and auto-sync flag
            sink: Download sink receiving Markdown documents
            settings: Timing settings
            logger: Optional logger instance
        """
        self.host = host
        self.state_store = state_store
        self.sink = sink
        self.settings = settings or SyncSettings()
        self.logger = logger or logging.getLogger('chat_transcript_sync.orchestrator.session')

        self.store = TrackingStore(state_store, self.logger)
        self.extractor = ConversationExtractor(
            converter=MarkdownConverter(logger=self.logger),
            selectors=host.selectors,
            logger=self.logger
        )
        self.exporter = ConversationExporter(self.extractor, sink, self.store, self.logger)
        self.orchestrator = BatchOrchestrator(
            host, self.store, sink,
            extractor=self.extractor,
            settings=self.settings,
            logger=self.logger,
            exporter=self.exporter
        )
        self.watcher = ChangeWatcher(host, self.exporter, self.settings, self.logger)
        self.cancel_event: Optional[asyncio.Event] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], logger: Optional[logging.Logger] = None) -> 'SyncSession':
        """
        Build a session from configuration.

        Args:
            config: Configuration dictionary
            logger: Optional logger instance

        Returns:
            SyncSession with the configured host, state file and export directory
        """
        host = HostFactory.create_host(config, logger)
        state_file = (config.get('tracking', {}) or {}).get('state_file', DEFAULT_STATE_FILE)
        state_store = JsonStateStore(state_file, logger)
        sink = MarkdownExporter(config, logger)
        return cls(host, state_store, sink, SyncSettings.from_config(config), logger)

    @property
    def auto_sync_enabled(self) -> bool:
        return bool(self.state_store.get(AUTO_SYNC_KEY, False))

    async def start(self) -> None:
        """Resume auto-sync if it was enabled in a previous run."""
        if self.auto_sync_enabled:
            self.logger.info("Auto-sync enabled in saved state, starting watcher")
            self.watcher.start()

    async def close(self) -> None:
        """Stop the watcher and release host resources."""
        await self.watcher.stop()
        close = getattr(self.host, 'close', None)
        if close is not None:
            await close()

    async def export_current(self) -> ItemOutcome:
        """Export the conversation currently shown, regardless of tracking state."""
        return await self.exporter.export_snapshot(self.host.snapshot())

    async def export_all(self, progress_sink: Optional[ProgressSink] = None) -> ExportResult:
        """Run a batch export; cancel() stops it before the next conversation."""
        if self.orchestrator.in_progress:
            raise BatchInProgressError("A batch export is already running")

        self.cancel_event = asyncio.Event()
        try:
            return await self.orchestrator.run_batch(progress_sink, self.cancel_event)
        finally:
            self.cancel_event = None

    def cancel(self) -> bool:
        """
        Request cancellation of the running batch.

        Returns:
            True if a batch was running
        """
        if self.cancel_event is None:
            return False
        self.cancel_event.set()
        return True

    def list_conversations(self) -> List[ConversationLink]:
        return self.orchestrator.list_conversations()

    async def load_all_conversations(self) -> int:
        """Materialize the whole sidebar and return the conversation count."""
        return await self.orchestrator.loader.materialize_all()

    async def enable_auto_sync(self) -> None:
        self.state_store.set(AUTO_SYNC_KEY, True)
        self.watcher.start()

    async def disable_auto_sync(self) -> None:
        self.state_store.set(AUTO_SYNC_KEY, False)
        await self.watcher.stop()

    def status(self) -> Dict[str, Any]:
        """Auto-sync flag, active conversation id and rendered message count."""
        snapshot = self.host.snapshot()
        return {
            'auto_sync_enabled': self.auto_sync_enabled,
            'conversation_id': snapshot.conversation_id,
            'message_count': snapshot.count(self.host.selectors.message_group),
            'batch_running': self.orchestrator.in_progress
        }

    def exported(self) -> List[str]:
        return sorted(self.store.get())

    def clear_exported(self) -> None:
        self.store.clear()
