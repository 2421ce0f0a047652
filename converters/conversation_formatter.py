"""Document assembly and filename helpers for exported conversations."""

import re
from typing import List

from models import ConversationRecord

DEFAULT_TITLE = 'Untitled Conversation'
FALLBACK_FILENAME = 'untitled'
MAX_FILENAME_LENGTH = 100

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE_RUN = re.compile(r'\s+')
_UNDERSCORE_RUN = re.compile(r'_+')


def format_conversation(conversation: ConversationRecord) -> str:
    """
    Format a conversation as a complete Markdown document.

    Args:
        conversation: Extracted conversation record

    Returns:
        Markdown document ending with a single newline
    """
    lines: List[str] = [f'# {conversation.title or DEFAULT_TITLE}', '']

    metadata = []
    if conversation.date:
        metadata.append(f'**Date**: {conversation.date}')
    if conversation.url:
        metadata.append(f'**URL**: {conversation.url}')
    if metadata:
        lines.extend(metadata)
        lines.append('')

    lines.extend(['---', ''])

    for message in conversation.messages:
        lines.extend([f'## {message.role.heading}', '', message.content, '', '---', ''])

    return '\n'.join(lines).strip() + '\n'


def sanitize_filename(title: str) -> str:
    """
    Make a title safe for use as a filename (without extension).

    Characters that are invalid on common filesystems are dropped, then
    whitespace runs become single underscores.

    Args:
        title: Original title

    Returns:
        Sanitized name, or 'untitled' when nothing usable remains
    """
    if not title:
        return FALLBACK_FILENAME

    name = _INVALID_FILENAME_CHARS.sub('', title)
    name = _WHITESPACE_RUN.sub('_', name)
    name = _UNDERSCORE_RUN.sub('_', name)
    name = name.strip('_')
    name = name[:MAX_FILENAME_LENGTH]
    return name or FALLBACK_FILENAME


def build_filename(conversation: ConversationRecord) -> str:
    """Markdown filename for a conversation."""
    return sanitize_filename(conversation.title) + '.md'
