"""Conversation title resolution from the rendered page."""

import logging
import re
from typing import List, Optional, Pattern, Tuple

from hosts.base_host import PageSnapshot
from hosts.selectors import Selectors, conversation_href

logger = logging.getLogger('chat_transcript_sync.extractors.title')

UNTITLED_CONVERSATION = 'Untitled Conversation'
MIN_TITLE_LENGTH = 2
FALLBACK_TITLE_LENGTH = 50

# Ordered (pattern, reason) rules rejecting generic or model-name titles
INVALID_TITLE_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r'^ChatGPT$', re.IGNORECASE), 'product name'),
    (re.compile(r'^New chat$', re.IGNORECASE), 'generic new chat label'),
    (re.compile(r'^GPT-?\d', re.IGNORECASE), 'model version'),
    (re.compile(r'^\d+\.?\d*$'), 'bare version number'),
    (re.compile(r'^o\d+', re.IGNORECASE), 'model version'),
    (re.compile(r'^claude', re.IGNORECASE), 'competitor model name'),
    (re.compile(r'^model$', re.IGNORECASE), 'generic model label'),
]


def invalid_title_reason(title: Optional[str]) -> Optional[str]:
    """
    Explain why a candidate title is rejected.

    Args:
        title: Candidate title

    Returns:
        Reason string, or None if the title is acceptable
    """
    if not title or len(title) < MIN_TITLE_LENGTH:
        return 'too short'
    for pattern, reason in INVALID_TITLE_RULES:
        if pattern.search(title):
            return reason
    return None


def is_valid_title(title: Optional[str]) -> bool:
    """Check whether a candidate title can name a conversation."""
    return invalid_title_reason(title) is None


class TitleResolver:
    """Picks the best available title for the active conversation."""

    def __init__(self, selectors: Optional[Selectors] = None, logger: Optional[logging.Logger] = None):
        self.selectors = selectors or Selectors()
        self.logger = logger or logging.getLogger('chat_transcript_sync.extractors.title')

    def resolve(self, snapshot: PageSnapshot) -> str:
        """
        Resolve the conversation title, falling back through ranked sources.

        Sources in order: the highlighted sidebar entry (confirmed by id), the
        sidebar entry linking to the active conversation, the page header, the
        first user message, and finally a fixed placeholder.

        Args:
            snapshot: Current page snapshot

        Returns:
            Non-empty title string
        """
        for source in (self._from_active_link, self._from_matching_link, self._from_header):
            title = source(snapshot)
            if title:
                return title

        title = self._from_first_user_message(snapshot)
        if title:
            return title

        self.logger.debug("No title source matched, using placeholder")
        return UNTITLED_CONVERSATION

    def _from_active_link(self, snapshot: PageSnapshot) -> Optional[str]:
        current_id = snapshot.conversation_id
        for selector in self.selectors.active_link:
            active_link = snapshot.document.select_one(selector)
            if active_link is None:
                continue

            link_href = active_link.get('href')
            # Visual state alone is not enough: the highlighted link must point here
            if current_id and link_href and current_id in link_href:
                title = active_link.get_text().strip()
                if is_valid_title(title):
                    return title
        return None

    def _from_matching_link(self, snapshot: PageSnapshot) -> Optional[str]:
        current_id = snapshot.conversation_id
        if not current_id:
            return None

        sidebar = snapshot.document.select_one(self.selectors.sidebar)
        if sidebar is None:
            return None

        matching_link = sidebar.find('a', href=conversation_href(current_id))
        if matching_link is not None:
            title = matching_link.get_text().strip()
            if is_valid_title(title):
                return title
        return None

    def _from_header(self, snapshot: PageSnapshot) -> Optional[str]:
        for selector in self.selectors.header_title:
            element = snapshot.document.select_one(selector)
            if element is not None:
                title = element.get_text().strip()
                if is_valid_title(title):
                    return title
        return None

    def _from_first_user_message(self, snapshot: PageSnapshot) -> Optional[str]:
        first_user_message = snapshot.document.select_one(self.selectors.user_message)
        if first_user_message is None:
            return None

        content = first_user_message.get_text().strip()
        if not content:
            return None

        title = content[:FALLBACK_TITLE_LENGTH].replace('\n', ' ')
        return title + ('...' if len(content) > FALLBACK_TITLE_LENGTH else '')
