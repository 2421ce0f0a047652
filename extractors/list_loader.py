"""Incremental loading of the lazily rendered conversation sidebar."""

import asyncio
import logging
from typing import List, Optional

from hosts.base_host import BaseHost, PageSnapshot, ScrollPosition
from hosts.selectors import Selectors, conversation_id_from_href
from models import ConversationLink, SyncSettings

logger = logging.getLogger('chat_transcript_sync.extractors.list_loader')


def collect_links(snapshot: PageSnapshot, host: BaseHost, selectors: Optional[Selectors] = None) -> List[ConversationLink]:
    """
    Enumerate the conversation links currently rendered in the sidebar.

    Args:
        snapshot: Current page snapshot
        host: Host used to resolve absolute URLs
        selectors: DOM selector table

    Returns:
        ConversationLinks in sidebar order
    """
    selectors = selectors or host.selectors
    conversations = []

    for link in snapshot.document.select(selectors.conversation_link):
        href = link.get('href') or ''
        title = link.get_text().strip() or 'Untitled'
        conversations.append(ConversationLink(
            id=conversation_id_from_href(href),
            title=title,
            href=href,
            url=host.absolute_url(href)
        ))

    return conversations


class ConversationListLoader:
    """Scrolls the sidebar until every conversation link is materialized."""

    def __init__(self, host: BaseHost, settings: Optional[SyncSettings] = None, logger: Optional[logging.Logger] = None):
        self.host = host
        self.settings = settings or SyncSettings()
        self.selectors = host.selectors
        self.logger = logger or logging.getLogger('chat_transcript_sync.extractors.list_loader')
        self.attempts = 0

    def count_links(self) -> int:
        return len(self.host.snapshot().document.select(self.selectors.conversation_link))

    def find_scroll_container(self, snapshot: PageSnapshot) -> Optional[str]:
        """
        Pick the selector of the sidebar's scrollable element.

        Returns:
            Selector for the first scrollable descendant of the sidebar, the
            sidebar selector itself, or None if there is no sidebar
        """
        sidebar = snapshot.document.select_one(self.selectors.sidebar)
        if sidebar is None:
            return None

        for selector in self.selectors.scroll_containers:
            if sidebar.select_one(selector) is not None:
                return f'{self.selectors.sidebar} {selector}'
        return self.selectors.sidebar

    async def materialize_all(self, cancel_event: Optional[asyncio.Event] = None) -> int:
        """
        Scroll to the bottom repeatedly until the link count stops growing.

        Stops after ``stall_limit`` consecutive scrolls without growth or after
        ``max_scroll_attempts`` scrolls, whichever comes first. The container
        is scrolled back to the top before returning.

        Args:
            cancel_event: Optional event that stops loading early when set

        Returns:
            Number of links visible when loading stopped
        """
        self.attempts = 0
        container = self.find_scroll_container(self.host.snapshot())
        if container is None:
            self.logger.warning("Sidebar not found")
            return 0

        current_count = self.count_links()
        no_change_count = 0
        self.logger.info(f"Starting sidebar scroll. Initial conversations: {current_count}")

        try:
            while self.attempts < self.settings.max_scroll_attempts:
                if cancel_event is not None and cancel_event.is_set():
                    self.logger.info("Sidebar loading cancelled")
                    break

                await self.host.scroll_to(container, ScrollPosition.BOTTOM)
                await asyncio.sleep(self.settings.settle_delay)

                last_count = current_count
                current_count = self.count_links()
                self.attempts += 1
                self.logger.debug(f"Scroll attempt {self.attempts}: {current_count} conversations")

                if current_count == last_count:
                    no_change_count += 1
                    if no_change_count >= self.settings.stall_limit:
                        self.logger.info("Reached end of sidebar")
                        break
                else:
                    no_change_count = 0
        finally:
            await self.host.scroll_to(container, ScrollPosition.TOP)

        self.logger.info(f"Finished loading. Total conversations: {current_count}")
        return current_count
