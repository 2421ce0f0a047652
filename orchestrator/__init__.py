"""
Orchestration package for coordinating conversation exports.

This package provides the layer that sequences batch runs (Load sidebar →
Check → Navigate → Extract → Submit → Report), watches the active
conversation for auto-sync, and dispatches action requests.
"""

from .batch_orchestrator import BatchInProgressError, BatchOrchestrator, NoConversationsFoundError
from .change_watcher import ChangeWatcher
from .conversation_exporter import ConversationExporter, ItemOutcome
from .dispatcher import Action, Request, RequestDispatcher, Response
from .export_report import ExportReport
from .session import SyncSession

__all__ = [
    'BatchOrchestrator',
    'BatchInProgressError',
    'NoConversationsFoundError',
    'ChangeWatcher',
    'ConversationExporter',
    'ItemOutcome',
    'Action',
    'Request',
    'Response',
    'RequestDispatcher',
    'ExportReport',
    'SyncSession'
]
