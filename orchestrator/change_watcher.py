"""Auto-sync: re-export the active conversation after new messages arrive."""

import asyncio
import logging
from typing import List, Optional, Set

from hosts.base_host import BaseHost, HostError, Subscription
from models import SyncSettings
from orchestrator.conversation_exporter import ConversationExporter, ItemOutcome

logger = logging.getLogger('chat_transcript_sync.orchestrator.watcher')


class ChangeWatcher:
    """
    Watches the conversation container and exports after message growth settles.

    Each change that raises the message count restarts a debounce timer; the
    export runs once the conversation has been quiet for ``debounce`` seconds.
    Navigation drops the subscription and re-attaches to the new page after
    ``reattach_delay`` seconds.
    """

    def __init__(
        self,
        host: BaseHost,
        exporter: ConversationExporter,
        settings: Optional[SyncSettings] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.host = host
        self.exporter = exporter
        self.settings = settings or SyncSettings()
        self.logger = logger or logging.getLogger('chat_transcript_sync.orchestrator.watcher')

        self.last_count = 0
        self.outcomes: List[ItemOutcome] = []

        self._running = False
        self._subscription: Optional[Subscription] = None
        self._navigation_subscription: Optional[Subscription] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._reattach_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_attached(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    @property
    def has_pending_export(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        """Start watching; must be called from the event loop."""
        if self._running:
            return

        self._running = True
        self._navigation_subscription = self.host.add_navigation_listener(self._on_navigation)
        self._attach()
        self.logger.info("Auto-sync started")

    async def stop(self) -> None:
        """Stop watching and wait for a running export to finish."""
        if not self._running:
            return

        self._running = False
        self._cancel_timer()
        if self._reattach_handle is not None:
            self._reattach_handle.cancel()
            self._reattach_handle = None
        self._detach()
        if self._navigation_subscription is not None:
            self._navigation_subscription.close()
            self._navigation_subscription = None

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self.logger.info("Auto-sync stopped")

    def _attach(self) -> None:
        self._detach()
        container = self.host.selectors.conversation_container
        try:
            self._subscription = self.host.subscribe(container, self._on_change)
        except HostError as e:
            self.logger.info(f"Could not find conversation container for auto-sync: {str(e)}")
            return

        self.last_count = self._message_count()
        self.logger.debug(f"Auto-sync attached ({self.last_count} messages)")

    def _detach(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _message_count(self) -> int:
        return self.host.snapshot().count(self.host.selectors.message_group)

    def _on_change(self) -> None:
        if not self._running:
            return

        current_count = self._message_count()
        if current_count <= self.last_count:
            return

        self.logger.info("New message detected, auto-syncing...")
        self.last_count = current_count

        # Wait for the message to finish rendering
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.settings.debounce, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if not self._running:
            return

        task = asyncio.get_running_loop().create_task(self._export_current())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _export_current(self) -> None:
        try:
            outcome = await self.exporter.export_snapshot(self.host.snapshot())
        except Exception as e:
            self.logger.error(f"Auto-sync export failed: {str(e)}", exc_info=True)
            return

        self.outcomes.append(outcome)
        if outcome.success:
            self.logger.info(f"Auto-sync complete: {outcome.filename}")
        else:
            self.logger.warning(f"Auto-sync failed: {outcome.error}")

    def _on_navigation(self, url: str) -> None:
        if not self._running:
            return

        self.logger.info(f"URL changed to {url}, re-attaching auto-sync...")
        self._cancel_timer()
        self._detach()
        if self._reattach_handle is not None:
            self._reattach_handle.cancel()
        loop = asyncio.get_running_loop()
        self._reattach_handle = loop.call_later(self.settings.reattach_delay, self._reattach)

    def _reattach(self) -> None:
        self._reattach_handle = None
        if self._running:
            self._attach()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
