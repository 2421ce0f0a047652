"""Export package persisting converted conversations and export tracking state.

Package Structure:
- markdown_exporter: Download sinks writing Markdown documents to disk
- state_store: JSON-file backed key/value state shared by tracking and settings
- tracking_store: Persistent set of already exported conversation ids

Configuration Referenced:
- export.output_directory: Base output path for exported files
- export.subfolder: Folder below the output directory receiving documents
- tracking.state_file: JSON file holding tracking state and the auto-sync flag
"""

from .markdown_exporter import BaseDownloadSink, MarkdownExporter
from .state_store import JsonStateStore, TrackingStoreError
from .tracking_store import TrackingStore

__all__ = [
    'BaseDownloadSink',
    'MarkdownExporter',
    'JsonStateStore',
    'TrackingStoreError',
    'TrackingStore'
]
