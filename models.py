"""Data models for the chat transcript sync pipeline."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger('chat_transcript_sync')


class MessageRole(Enum):
    """Author role of a transcript message."""
    USER = "user"
    ASSISTANT = "assistant"

    @property
    def heading(self) -> str:
        """Heading label used in exported documents."""
        return 'User' if self is MessageRole.USER else 'Assistant'


class ProgressStatus(Enum):
    """Phase reported by a progress event."""
    SCROLLING = "scrolling"
    CHECKING = "checking"
    LOADING = "loading"
    EXPORTING = "exporting"


@dataclass(frozen=True)
class Message:
    """A single transcript message converted to Markdown."""

    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize message to dictionary."""
        return {'role': self.role.value, 'content': self.content}


@dataclass
class ConversationRecord:
    """Represents an extracted conversation ready for export."""

    id: Optional[str]
    title: str
    date: str
    url: str
    messages: Tuple[Message, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Freeze the message sequence."""
        self.messages = tuple(self.messages)

    @staticmethod
    def today() -> str:
        """UTC calendar date stamp (date only)."""
        return datetime.now(timezone.utc).date().isoformat()

    @property
    def can_deduplicate(self) -> bool:
        """Records without an id cannot be tracked as exported."""
        return bool(self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize conversation to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'date': self.date,
            'url': self.url,
            'messages': [message.to_dict() for message in self.messages]
        }


@dataclass(frozen=True)
class ConversationLink:
    """Lightweight reference to a sidebar entry (no message content)."""

    id: str
    title: str
    href: str
    url: str = ''

    def to_dict(self) -> Dict[str, Any]:
        """Serialize link to dictionary."""
        return {'id': self.id, 'title': self.title, 'href': self.href, 'url': self.url}


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification emitted during a batch run."""

    current: int
    total: int
    title: str
    status: ProgressStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current': self.current,
            'total': self.total,
            'title': self.title,
            'status': self.status.value
        }


@dataclass
class SubmitResult:
    """Outcome of handing a document to a download sink."""

    success: bool
    handle: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'success': self.success, 'handle': self.handle, 'error': self.error}


@dataclass(frozen=True)
class ExportResult:
    """
    Aggregate tally of a batch export run.

    Results are immutable: the orchestrator builds the tally with the
    ``with_*`` methods, each returning a new result, so a returned result
    never changes afterwards.
    """

    total: int = 0
    exported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: Tuple[str, ...] = ()
    cancelled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, 'errors', tuple(self.errors))

    @property
    def processed(self) -> int:
        """Number of items that reached a final outcome."""
        return self.exported + self.skipped + self.failed

    def with_exported(self) -> 'ExportResult':
        return replace(self, exported=self.exported + 1)

    def with_skipped(self) -> 'ExportResult':
        return replace(self, skipped=self.skipped + 1)

    def with_failure(self, message: str) -> 'ExportResult':
        """Count a failed item and keep its diagnostic."""
        return replace(self, failed=self.failed + 1, errors=self.errors + (message,))

    def as_cancelled(self) -> 'ExportResult':
        return replace(self, cancelled=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize result to dictionary."""
        return {
            'total': self.total,
            'exported': self.exported,
            'skipped': self.skipped,
            'failed': self.failed,
            'errors': list(self.errors),
            'cancelled': self.cancelled
        }


@dataclass
class SyncSettings:
    """Timing constants and bounds used by the loader, orchestrator and watcher."""

    settle_delay: float = 0.8
    max_scroll_attempts: int = 50
    stall_limit: int = 3
    load_timeout: float = 10.0
    poll_interval: float = 0.2
    render_settle: float = 0.5
    item_delay: float = 1.5
    debounce: float = 2.0
    reattach_delay: float = 1.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SyncSettings':
        """Build settings from the ``sync`` configuration section."""
        sync_config = config.get('sync', {}) or {}
        defaults = cls()
        values = {}
        for name in defaults.__dataclass_fields__:
            if name in sync_config and sync_config[name] is not None:
                values[name] = type(getattr(defaults, name))(sync_config[name])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}
