"""Persistent set of conversation ids that have already been exported."""

import logging
from typing import Optional, Set

from .state_store import JsonStateStore, TrackingStoreError

logger = logging.getLogger('chat_transcript_sync.exporters.tracking')

EXPORTED_KEY = 'exported_conversations'


class TrackingStore:
    """Tracks exported conversation ids for deduplication."""

    def __init__(self, state_store: JsonStateStore, logger: Optional[logging.Logger] = None):
        """
        Initialize tracking store.

        Args:
            state_store: Backing JSON state store
            logger: Optional logger instance (defaults to module logger)
        """
        self.state_store = state_store
        self.logger = logger or logging.getLogger('chat_transcript_sync.exporters.tracking')

    def get(self) -> Set[str]:
        """
        Read the exported ids from persisted state.

        Returns:
            Set of exported conversation ids

        Raises:
            TrackingStoreError: If the state cannot be read
        """
        value = self.state_store.get(EXPORTED_KEY, []) or []
        if not isinstance(value, list):
            raise TrackingStoreError(f"'{EXPORTED_KEY}' must be a list, got {type(value).__name__}")
        return set(value)

    def contains(self, conversation_id: str) -> bool:
        """Check membership against the freshest persisted state."""
        return conversation_id in self.get()

    def add(self, conversation_id: str) -> None:
        """
        Mark a conversation as exported and persist immediately.

        Args:
            conversation_id: Conversation id (ignored if empty)

        Raises:
            TrackingStoreError: If the state cannot be written
        """
        if not conversation_id:
            return

        exported = self.get()
        if conversation_id in exported:
            return
        exported.add(conversation_id)
        self.state_store.set(EXPORTED_KEY, sorted(exported))
        self.logger.debug(f"Marked conversation {conversation_id} as exported ({len(exported)} total)")

    def clear(self) -> None:
        """Forget every exported id."""
        self.state_store.remove(EXPORTED_KEY)
        self.logger.info("Export tracking cleared")

    def count(self) -> int:
        return len(self.get())
