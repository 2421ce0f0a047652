"""Abstract host interface: document access, navigation and change notification."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from .selectors import Selectors, conversation_id_from_url


class HostError(Exception):
    """Base exception for host-related errors."""
    pass


class NavigationError(HostError):
    """Exception raised when a navigation target cannot be activated."""
    pass


class ScrollPosition(Enum):
    """Scroll targets for a scrollable container."""
    TOP = "top"
    BOTTOM = "bottom"


@dataclass
class PageSnapshot:
    """Read view of the host document at one point in time."""

    document: BeautifulSoup
    url: str

    @property
    def conversation_id(self) -> Optional[str]:
        """Id of the active conversation, taken from the URL path."""
        return conversation_id_from_url(self.url)

    def count(self, selector: str) -> int:
        """Number of elements matching a selector."""
        return len(self.document.select(selector))


class Subscription:
    """Handle returned by host subscriptions; close() stops delivery."""

    def __init__(self, on_close: Optional[Callable[[], None]] = None):
        self._on_close = on_close
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()


class BaseHost(ABC):
    """Abstract base class for documents hosting chat transcripts."""

    def __init__(self, config: Dict[str, Any], logger=None):
        """
        Initialize base host with configuration and logger.

        Args:
            config: Configuration dictionary
            logger: Logger instance (optional, uses module logger if not provided)
        """
        self.config = config
        self.logger = logger or logging.getLogger('chat_transcript_sync.host')
        self.selectors = Selectors.from_config(config)
        self.base_url = (config.get('host', {}) or {}).get('base_url', 'https://chatgpt.com').rstrip('/')
        self._navigation_listeners: List[Callable[[str], None]] = []

    @abstractmethod
    def snapshot(self) -> PageSnapshot:
        """
        Capture the current document.

        Returns:
            PageSnapshot of the rendered page and its URL
        """
        pass

    @abstractmethod
    async def scroll_to(self, selector: str, position: ScrollPosition) -> None:
        """
        Scroll the container matched by selector.

        Args:
            selector: CSS selector of the scrollable container
            position: Target scroll position
        """
        pass

    @abstractmethod
    async def activate(self, href: str) -> None:
        """
        Activate a link target.

        The document reflects the new conversation eventually, not
        necessarily when this returns.

        Args:
            href: Link target (e.g. ``/c/<id>``)

        Raises:
            NavigationError: If the target cannot be activated
        """
        pass

    @abstractmethod
    def subscribe(self, selector: str, callback: Callable[[], None]) -> Subscription:
        """
        Subscribe to content changes below the container matched by selector.

        Args:
            selector: CSS selector of the observed container
            callback: Called on the event loop after each change

        Returns:
            Subscription handle

        Raises:
            HostError: If no container matches
        """
        pass

    def add_navigation_listener(self, callback: Callable[[str], None]) -> Subscription:
        """Register a callback invoked with the new URL after each navigation."""
        self._navigation_listeners.append(callback)

        def remove() -> None:
            if callback in self._navigation_listeners:
                self._navigation_listeners.remove(callback)

        return Subscription(remove)

    def _notify_navigation(self, url: str) -> None:
        for callback in list(self._navigation_listeners):
            try:
                callback(url)
            except Exception as e:
                self.logger.error(f"Navigation listener failed: {str(e)}", exc_info=True)

    def absolute_url(self, href: str) -> str:
        """Resolve a link target against the host base URL."""
        if href.startswith('http://') or href.startswith('https://'):
            return href
        return f'{self.base_url}{href}'
