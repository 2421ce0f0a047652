"""Extraction of the active conversation from a page snapshot."""

import logging
from typing import List, Optional

from converters.markdown_converter import MarkdownConverter
from hosts.base_host import PageSnapshot
from hosts.selectors import Selectors
from models import ConversationRecord, Message, MessageRole
from .title_resolver import TitleResolver

logger = logging.getLogger('chat_transcript_sync.extractors.conversation')


class ConversationExtractor:
    """Builds ConversationRecords from the rendered messages of a page."""

    def __init__(
        self,
        converter: Optional[MarkdownConverter] = None,
        title_resolver: Optional[TitleResolver] = None,
        selectors: Optional[Selectors] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize extractor.

        Args:
            converter: Markdown converter for message bodies
            title_resolver: Title resolver (shares the extractor's selectors by default)
            selectors: DOM selector table
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('chat_transcript_sync.extractors.conversation')
        self.selectors = selectors or Selectors()
        self.converter = converter or MarkdownConverter(logger=self.logger)
        self.title_resolver = title_resolver or TitleResolver(self.selectors, self.logger)

    def extract_messages(self, snapshot: PageSnapshot) -> List[Message]:
        """Convert every user/assistant message of the page, in document order."""
        messages = []

        for group in snapshot.document.select(self.selectors.message_group):
            role_value = group.get(self.selectors.role_attribute)
            try:
                role = MessageRole(role_value)
            except ValueError:
                self.logger.debug(f"Skipping message with role {role_value!r}")
                continue

            content_el = group.select_one(self.selectors.message_content)
            if content_el is None:
                continue

            markdown_content = self.converter.convert(content_el)
            if markdown_content.strip():
                messages.append(Message(role=role, content=markdown_content))

        return messages

    def extract(self, snapshot: PageSnapshot) -> Optional[ConversationRecord]:
        """
        Extract the active conversation.

        Args:
            snapshot: Current page snapshot

        Returns:
            ConversationRecord, or None when no message content survives
        """
        if not snapshot.document.select_one(self.selectors.message_group):
            self.logger.info("No messages found")
            return None

        messages = self.extract_messages(snapshot)
        if not messages:
            self.logger.info("No message content extracted")
            return None

        record = ConversationRecord(
            id=snapshot.conversation_id,
            title=self.title_resolver.resolve(snapshot),
            date=ConversationRecord.today(),
            url=snapshot.url,
            messages=messages
        )
        self.logger.debug(f"Extracted {len(messages)} messages from conversation {record.id}: '{record.title}'")
        return record
