"""Host implementation backed by a directory of saved chat pages."""

import asyncio
import copy
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from .base_host import BaseHost, HostError, NavigationError, PageSnapshot, ScrollPosition, Subscription
from .selectors import conversation_href, conversation_id_from_href

logger = logging.getLogger('chat_transcript_sync.host.snapshot')


class HtmlSnapshotHost(BaseHost):
    """
    Serves saved chat pages as a live-looking host document.

    Directory layout::

        <snapshot_directory>/index.html               page shell with the sidebar
        <snapshot_directory>/conversations/<id>.html  one saved page per conversation

    The sidebar behaves like a virtualized list: only ``page_size`` links are
    visible at first and each scroll to the bottom reveals another page. The
    active conversation file is polled for modifications to emulate content
    change notifications.
    """

    ACTIVE_LINK_CLASS = 'bg-token-sidebar-surface-secondary'

    def __init__(self, config: Dict[str, Any], logger=None):
        """
        Initialize snapshot host with configuration.

        Args:
            config: Configuration dictionary with host.snapshot_directory
            logger: Logger instance (optional)
        """
        super().__init__(config, logger)

        host_config = config.get('host', {}) or {}
        snapshot_directory = host_config.get('snapshot_directory')
        if not snapshot_directory:
            raise ValueError("host.snapshot_directory is required for the snapshot host")

        self.snapshot_directory = Path(snapshot_directory).resolve()
        self.index_path = self.snapshot_directory / 'index.html'
        self.conversations_path = self.snapshot_directory / 'conversations'

        if not self.snapshot_directory.exists():
            raise FileNotFoundError(f"Snapshot directory not found: {self.snapshot_directory}")
        if not self.index_path.exists():
            raise FileNotFoundError(f"index.html not found in snapshot directory: {self.index_path}")

        self.page_size = int(host_config.get('page_size', 28))
        self.poll_interval = float(host_config.get('poll_interval', 1.0))
        self.parser = host_config.get('parser', 'lxml')

        self._shell = self._parse_file(self.index_path)
        self._revealed = self.page_size
        self.scroll_position = ScrollPosition.TOP

        self._active_id: Optional[str] = None
        self._active_page: Optional[BeautifulSoup] = None
        self._active_mtime: Optional[float] = None

        self._subscribers: List[Callable[[], None]] = []
        self._poll_task: Optional[asyncio.Task] = None

        start_conversation = host_config.get('start_conversation')
        if start_conversation:
            self._load_conversation(start_conversation)

        self.logger.info(
            f"Initialized HtmlSnapshotHost for path: {self.snapshot_directory} "
            f"({self.total_links} conversations, page size {self.page_size})"
        )

    @property
    def total_links(self) -> int:
        """Number of conversation links in the saved sidebar."""
        return len(self._shell.select(self.selectors.conversation_link))

    @property
    def revealed_links(self) -> int:
        return min(self._revealed, self.total_links)

    @property
    def current_url(self) -> str:
        if self._active_id:
            return self.absolute_url(conversation_href(self._active_id))
        return f'{self.base_url}/'

    def snapshot(self) -> PageSnapshot:
        """Compose the shell, the visible sidebar slice and the active conversation."""
        document = copy.copy(self._shell)

        for link in document.select(self.selectors.conversation_link)[self._revealed:]:
            link.decompose()

        if self._active_id:
            active_href = conversation_href(self._active_id)
            for link in document.find_all('a', href=active_href):
                classes = list(link.get('class') or [])
                if self.ACTIVE_LINK_CLASS not in classes:
                    classes.append(self.ACTIVE_LINK_CLASS)
                link['class'] = classes

        if self._active_page is not None:
            self._mount_conversation(document, self._active_page)

        return PageSnapshot(document=document, url=self.current_url)

    async def scroll_to(self, selector: str, position: ScrollPosition) -> None:
        """Scroll the sidebar; reaching the bottom materializes the next page of links."""
        if self._shell.select_one(selector) is None:
            raise HostError(f"Scroll container not found: {selector}")

        if position is ScrollPosition.BOTTOM and self._revealed < self.total_links:
            self._revealed = min(self.total_links, self._revealed + self.page_size)
            self.logger.debug(f"Revealed {self._revealed}/{self.total_links} sidebar links")

        self.scroll_position = position
        await asyncio.sleep(0)

    async def activate(self, href: str) -> None:
        """Open the saved page for a conversation link."""
        conversation_id = conversation_id_from_href(href)
        self._load_conversation(conversation_id)
        self.logger.debug(f"Navigated to {self.current_url}")
        self._notify_navigation(self.current_url)
        await asyncio.sleep(0)

    def subscribe(self, selector: str, callback: Callable[[], None]) -> Subscription:
        """Watch the active conversation file for modifications."""
        if self.snapshot().document.select_one(selector) is None:
            raise HostError(f"Observed container not found: {selector}")

        self._subscribers.append(callback)
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_changes())

        def remove() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return Subscription(remove)

    async def close(self) -> None:
        """Stop the change polling task."""
        self._subscribers.clear()
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
        self._poll_task = None

    async def _poll_changes(self) -> None:
        while self._subscribers:
            await asyncio.sleep(self.poll_interval)
            if not self._active_id:
                continue

            path = self._conversation_file(self._active_id)
            try:
                mtime = os.path.getmtime(path)
            except OSError as e:
                self.logger.warning(f"Cannot stat {path}: {str(e)}")
                continue

            if self._active_mtime is not None and mtime <= self._active_mtime:
                continue

            self.logger.debug(f"Conversation file changed: {path}")
            self._active_page = self._parse_file(path)
            self._active_mtime = mtime
            for callback in list(self._subscribers):
                try:
                    callback()
                except Exception as e:
                    self.logger.error(f"Change subscriber failed: {str(e)}", exc_info=True)

    def _load_conversation(self, conversation_id: str) -> None:
        path = self._conversation_file(conversation_id)
        if not path.exists():
            raise NavigationError(f"No saved page for conversation {conversation_id}: {path}")

        self._active_page = self._parse_file(path)
        self._active_mtime = os.path.getmtime(path)
        self._active_id = conversation_id

    def _conversation_file(self, conversation_id: str) -> Path:
        return self.conversations_path / f'{conversation_id}.html'

    def _mount_conversation(self, document: BeautifulSoup, page: BeautifulSoup) -> None:
        """Replace the shell's main element with the conversation page's main content."""
        source = page.find('main') or page.find('body') or page
        content = copy.copy(source)
        if content.name != 'main':
            content.name = 'main'

        target = document.find('main')
        if target is not None:
            target.replace_with(content)
        elif document.body is not None:
            document.body.append(content)
        else:
            document.append(content)

    def _parse_file(self, path: Path) -> BeautifulSoup:
        with open(path, 'r', encoding='utf-8') as f:
            return BeautifulSoup(f.read(), self.parser)
