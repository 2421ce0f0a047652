"""JSON-file backed key/value state persisted across runs."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger('chat_transcript_sync.exporters.state')


class TrackingStoreError(Exception):
    """Raised when persisted state cannot be read or written."""
    pass


class JsonStateStore:
    """
    Small persistent key/value store kept in a single JSON file.

    Every read goes to disk so that concurrent writers in the same process
    (batch runs and auto-sync) always observe each other's updates. Writes
    replace the file atomically.
    """

    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        """
        Initialize state store.

        Args:
            path: Location of the JSON state file (created on first write)
            logger: Optional logger instance
        """
        self.path = Path(path)
        self.logger = logger or logging.getLogger('chat_transcript_sync.exporters.state')

    def load(self) -> Dict[str, Any]:
        """
        Read the whole state file.

        Returns:
            State dictionary (empty if the file does not exist yet)

        Raises:
            TrackingStoreError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise TrackingStoreError(f"Failed to read state file {self.path}: {str(e)}") from e

        if not isinstance(data, dict):
            raise TrackingStoreError(f"State file {self.path} must contain a JSON object")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Persist a single key."""
        data = self.load()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self.load()
        if key in data:
            del data[key]
            self._write(data)

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix='.state-', suffix='.json', dir=str(self.path.parent))
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise TrackingStoreError(f"Failed to write state file {self.path}: {str(e)}") from e

        self.logger.debug(f"State saved to {self.path}")
