"""Request dispatch: maps action requests onto sync session operations."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from exporters import TrackingStoreError
from hosts import HostError
from models import ProgressEvent
from orchestrator.batch_orchestrator import BatchInProgressError, NoConversationsFoundError
from orchestrator.session import SyncSession

logger = logging.getLogger('chat_transcript_sync.orchestrator.dispatcher')


class Action(Enum):
    """Request kinds served by the dispatcher."""
    EXPORT_CURRENT = "export_current"
    EXPORT_ALL = "export_all"
    GET_CONVERSATION_LIST = "get_conversation_list"
    LOAD_ALL_CONVERSATIONS = "load_all_conversations"
    ENABLE_AUTO_SYNC = "enable_auto_sync"
    DISABLE_AUTO_SYNC = "disable_auto_sync"
    GET_STATUS = "get_status"
    GET_EXPORTED = "get_exported"
    CLEAR_EXPORTED = "clear_exported"


@dataclass
class Request:
    """Action request with optional progress callback."""

    action: Action
    progress_sink: Optional[Callable[[ProgressEvent], None]] = None


@dataclass
class Response:
    """Reply to a request."""

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {'success': self.success}
        payload.update(self.data)
        if self.error is not None:
            payload['error'] = self.error
        return payload


Handler = Callable[[Request], Awaitable[Response]]


class RequestDispatcher:
    """Routes requests to the handler registered for their action."""

    def __init__(self, session: SyncSession, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger('chat_transcript_sync.orchestrator.dispatcher')
        self.handlers: Dict[Action, Handler] = {
            Action.EXPORT_CURRENT: self._export_current,
            Action.EXPORT_ALL: self._export_all,
            Action.GET_CONVERSATION_LIST: self._get_conversation_list,
            Action.LOAD_ALL_CONVERSATIONS: self._load_all_conversations,
            Action.ENABLE_AUTO_SYNC: self._enable_auto_sync,
            Action.DISABLE_AUTO_SYNC: self._disable_auto_sync,
            Action.GET_STATUS: self._get_status,
            Action.GET_EXPORTED: self._get_exported,
            Action.CLEAR_EXPORTED: self._clear_exported,
        }

    async def dispatch(self, request: Request) -> Response:
        """
        Run the handler for a request.

        Run-level failures are reported in the response instead of raised.

        Args:
            request: Request to serve

        Returns:
            Response with handler data or an error message
        """
        handler = self.handlers.get(request.action)
        if handler is None:
            return Response(success=False, error=f"Unknown action: {request.action}")

        self.logger.debug(f"Dispatching {request.action.value}")
        try:
            return await handler(request)
        except (NoConversationsFoundError, BatchInProgressError, TrackingStoreError, HostError) as e:
            self.logger.error(f"{request.action.value} failed: {str(e)}")
            return Response(success=False, error=str(e))

    async def _export_current(self, request: Request) -> Response:
        outcome = await self.session.export_current()
        if not outcome.success:
            return Response(success=False, data=outcome.to_dict(), error=outcome.error)
        return Response(success=True, data=outcome.to_dict())

    async def _export_all(self, request: Request) -> Response:
        result = await self.session.export_all(request.progress_sink)
        return Response(success=True, data={'results': result.to_dict()})

    async def _get_conversation_list(self, request: Request) -> Response:
        conversations = [link.to_dict() for link in self.session.list_conversations()]
        return Response(success=True, data={'conversations': conversations})

    async def _load_all_conversations(self, request: Request) -> Response:
        count = await self.session.load_all_conversations()
        return Response(success=True, data={'count': count})

    async def _enable_auto_sync(self, request: Request) -> Response:
        await self.session.enable_auto_sync()
        return Response(success=True)

    async def _disable_auto_sync(self, request: Request) -> Response:
        await self.session.disable_auto_sync()
        return Response(success=True)

    async def _get_status(self, request: Request) -> Response:
        return Response(success=True, data=self.session.status())

    async def _get_exported(self, request: Request) -> Response:
        exported = self.session.exported()
        return Response(success=True, data={'exported': exported, 'count': len(exported)})

    async def _clear_exported(self, request: Request) -> Response:
        self.session.clear_exported()
        return Response(success=True)
