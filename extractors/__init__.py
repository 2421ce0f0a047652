"""Extractors package reading conversations, titles and sidebar links from host pages."""

from .conversation_extractor import ConversationExtractor
from .list_loader import ConversationListLoader, collect_links
from .title_resolver import (
    INVALID_TITLE_RULES,
    UNTITLED_CONVERSATION,
    TitleResolver,
    invalid_title_reason,
    is_valid_title
)

__all__ = [
    'ConversationExtractor',
    'ConversationListLoader',
    'collect_links',
    'TitleResolver',
    'INVALID_TITLE_RULES',
    'UNTITLED_CONVERSATION',
    'invalid_title_reason',
    'is_valid_title'
]
