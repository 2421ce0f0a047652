"""Download sinks writing exported conversations to disk."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from models import SubmitResult

DEFAULT_SUBFOLDER = 'chatgpt-exports'


class BaseDownloadSink(ABC):
    """Destination for exported Markdown documents."""

    @abstractmethod
    async def submit(self, filename: str, content: str, conversation_id: Optional[str]) -> SubmitResult:
        """
        Store a document.

        Args:
            filename: Sanitized filename including the .md suffix
            content: Markdown document
            conversation_id: Id of the exported conversation, if known

        Returns:
            SubmitResult with a handle on success or an error message
        """
        pass


class MarkdownExporter(BaseDownloadSink):
    """
    Writes exported conversations below ``<output_directory>/<subfolder>``.

    An existing file is never overwritten: the new document gets a numbered
    name instead (``title (1).md``), the way browser downloads behave.
    """

    def __init__(self, config: Dict[str, Any], logger: Optional[logging.Logger] = None, output_dir: Optional[str] = None):
        """
        Initialize the markdown exporter.

        Args:
            config: Configuration dictionary with export settings
            logger: Logger instance
            output_dir: Optional output directory override (takes precedence over config)
        """
        self.config = config
        self.logger = logger or logging.getLogger('chat_transcript_sync.exporters.markdown_exporter')

        export_config = config.get('export', {}) or {}
        self.output_directory = Path(output_dir) if output_dir else Path(export_config.get('output_directory', './exports'))
        self.subfolder = export_config.get('subfolder', DEFAULT_SUBFOLDER)
        self.export_directory = self.output_directory / self.subfolder if self.subfolder else self.output_directory

        self.stats = {
            'files_written': 0,
            'bytes_written': 0,
            'total_errors': 0
        }
        self.exported_files: List[str] = []

        self.logger.info(f"MarkdownExporter initialized: {self.export_directory}")

    async def submit(self, filename: str, content: str, conversation_id: Optional[str]) -> SubmitResult:
        """Write one document, returning the written path as the handle."""
        try:
            self.export_directory.mkdir(parents=True, exist_ok=True)
            target = self._unique_path(self.export_directory / Path(filename).name)
            target.write_text(content, encoding='utf-8')
        except OSError as e:
            self.logger.error(f"Failed to write '{filename}' for conversation {conversation_id}: {e}")
            self.stats['total_errors'] += 1
            return SubmitResult(success=False, error=str(e))

        self.stats['files_written'] += 1
        self.stats['bytes_written'] += len(content.encode('utf-8'))
        self.exported_files.append(str(target))
        self.logger.info(f"Saved conversation {conversation_id} to {target}")
        return SubmitResult(success=True, handle=str(target))

    @staticmethod
    def _unique_path(path: Path) -> Path:
        if not path.exists():
            return path

        counter = 1
        while True:
            candidate = path.with_name(f'{path.stem} ({counter}){path.suffix}')
            if not candidate.exists():
                return candidate
            counter += 1

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.copy()
