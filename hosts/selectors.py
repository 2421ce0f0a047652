"""DOM selector table for the chat host's rendered pages.

The host changes its markup from time to time, so every selector can be
overridden from the ``selectors`` configuration section.
"""

import re
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

CONVERSATION_PATH_PREFIX = '/c/'
CONVERSATION_ID_PATTERN = re.compile(r'/c/([a-f0-9-]+)')


@dataclass(frozen=True)
class Selectors:
    """CSS selectors used to read the host document."""

    # Conversation content
    conversation_container: str = 'main [class*="react-scroll-to-bottom"]'
    message_group: str = '[data-message-author-role]'
    user_message: str = '[data-message-author-role="user"]'
    message_content: str = '.markdown, .whitespace-pre-wrap'

    # Sidebar
    sidebar: str = 'nav'
    conversation_link: str = 'nav a[href^="/c/"]'
    scroll_containers: Tuple[str, ...] = ('[class*="overflow-y-auto"]', '[style*="overflow"]')
    active_link: Tuple[str, ...] = (
        'nav a[href^="/c/"].bg-token-sidebar-surface-secondary',
        'nav a[href^="/c/"][class*="bg-"]',
        'nav li[class*="bg-"] a[href^="/c/"]',
    )

    # Header/title
    header_title: Tuple[str, ...] = (
        '[data-testid="conversation-title"]',
        'main h1',
        'header h1',
    )

    role_attribute: str = 'data-message-author-role'

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'Selectors':
        """Apply overrides from the ``selectors`` configuration section."""
        overrides = (config or {}).get('selectors', {}) or {}
        if not overrides:
            return cls()

        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in overrides.items():
            if key not in known:
                raise ValueError(f"Unknown selector '{key}'")
            default = known[key].default
            if isinstance(default, tuple):
                value = tuple([value] if isinstance(value, str) else value)
            values[key] = value
        return replace(cls(), **values)


def conversation_id_from_url(url: Optional[str]) -> Optional[str]:
    """Extract the conversation id from a URL or path (``/c/<id>``)."""
    if not url:
        return None
    match = CONVERSATION_ID_PATTERN.search(urlparse(url).path)
    return match.group(1) if match else None


def conversation_id_from_href(href: str) -> str:
    """Conversation id of a sidebar link target."""
    return href.replace(CONVERSATION_PATH_PREFIX, '', 1)


def conversation_href(conversation_id: str) -> str:
    """Sidebar link target for a conversation id."""
    return f'{CONVERSATION_PATH_PREFIX}{conversation_id}'
