"""Converters package for transcript HTML to Markdown conversion."""

import logging

from .conversation_formatter import build_filename, format_conversation, sanitize_filename
from .markdown_converter import MarkdownConverter, html_to_markdown

logger = logging.getLogger('chat_transcript_sync.converters')


def convert_conversation(conversation, logger=None):
    """
    Convenience function rendering a ConversationRecord to a named document.

    Args:
        conversation: ConversationRecord with converted messages
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        Tuple of (filename, markdown document)

    Example:
        >>> from converters import convert_conversation
        >>> filename, document = convert_conversation(record)
    """
    if logger is None:
        logger = logging.getLogger('chat_transcript_sync.converters')

    filename = build_filename(conversation)
    document = format_conversation(conversation)
    logger.debug(f"Formatted conversation {conversation.id} as {filename} ({len(document)} chars)")
    return filename, document


__all__ = [
    'convert_conversation',
    'MarkdownConverter',
    'html_to_markdown',
    'format_conversation',
    'sanitize_filename',
    'build_filename'
]
