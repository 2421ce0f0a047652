"""Logging setup for the sync tool: colored console output, rotating log file, batch summaries."""

import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Dict, Optional

import colorlog

LOGGER_NAME = 'chat_transcript_sync'

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%H:%M:%S'

LEVEL_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def resolve_level(verbosity: int = 0, level: Optional[str] = None) -> int:
    """
    Pick the log level from an explicit name or the ``-v`` count.

    Raises:
        ValueError: If ``level`` is not a standard level name
    """
    if level:
        name = level.upper()
        if name not in LEVEL_COLORS:
            raise ValueError(f"Invalid log level '{level}'. Must be one of: {sorted(LEVEL_COLORS)}")
        return getattr(logging, name)

    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    level: Optional[str] = None,
    log_format: str = DEFAULT_FORMAT
) -> logging.Logger:
    """
    Configure the ``chat_transcript_sync`` logger tree.

    Calling again replaces the handlers, so the CLI can set up console logging
    first and reconfigure once the config file has been read.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional path of a rotating log file
        level: Explicit level name, overrides ``verbosity``
        log_format: Record format shared by console and file output

    Returns:
        Configured package logger
    """
    log_level = resolve_level(verbosity, level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    console = colorlog.StreamHandler()
    console.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=DEFAULT_DATE_FORMAT,
        log_colors=LEVEL_COLORS
    ))
    logger.addHandler(console)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(log_format))
            logger.addHandler(file_handler)
            logger.debug(f"Writing log file {log_file}")
        except OSError as e:
            logger.warning(f"Log file {log_file} unavailable, console only: {e}")

    return logger


def format_duration(seconds: float) -> str:
    """Render a duration as ``12.3s``, ``4m 5s`` or ``1h 2m 3s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"

    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {secs}s"


class ProgressTracker:
    """
    Context manager logging the progress of one batch export.

    Every tenth conversation and every failure is logged at INFO; leaving the
    context logs a summary whose level reflects how the batch went.
    """

    def __init__(self, total: int, item_type: str = "conversations"):
        self.total = total
        self.item_type = item_type
        self.exported = 0
        self.skipped = 0
        self.failed = 0
        self.cancelled = False
        self.start_time: Optional[float] = None
        self.logger = logging.getLogger(f'{LOGGER_NAME}.progress')

    @property
    def processed(self) -> int:
        return self.exported + self.skipped + self.failed

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.monotonic()
        self.logger.info(f"Processing {self.total} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return

        attempted = self.processed - self.skipped
        if attempted and self.failed == attempted:
            log = self.logger.error
        elif self.failed or self.cancelled:
            log = self.logger.warning
        else:
            log = self.logger.info

        status = " (cancelled)" if self.cancelled else ""
        log(
            f"{self.item_type.capitalize()}{status}: {self.processed}/{self.total} processed, "
            f"{self.exported} exported, {self.skipped} skipped, {self.failed} failed "
            f"in {format_duration(self.elapsed)}"
        )

    @property
    def elapsed(self) -> float:
        return 0.0 if self.start_time is None else time.monotonic() - self.start_time

    def record(self, title: str, exported: bool = False, skipped: bool = False) -> None:
        """
        Count one conversation.

        Args:
            title: Conversation label, used in the progress line
            exported: The conversation was written and tracked
            skipped: The conversation was already exported
        """
        if skipped:
            self.skipped += 1
        elif exported:
            self.exported += 1
        else:
            self.failed += 1

        failed = not (exported or skipped)
        if failed or self.processed % 10 == 0:
            outcome = "skipped" if skipped else ("exported" if exported else "failed")
            self.logger.info(f"[{self.processed}/{self.total}] {title}: {outcome}")

    def get_stats(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'processed': self.processed,
            'exported': self.exported,
            'skipped': self.skipped,
            'failed': self.failed,
            'cancelled': self.cancelled,
            'elapsed': self.elapsed,
            'elapsed_formatted': format_duration(self.elapsed)
        }


def log_section(title: str) -> None:
    """Log a banner line separating the phases of a run."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("=" * 60)
    logger.info(f"  {title.upper()}")
    logger.info("=" * 60)


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective configuration, one line per setting."""
    logger = logging.getLogger(LOGGER_NAME)
    log_section("Configuration")

    host = config.get('host', {}) or {}
    export = config.get('export', {}) or {}
    tracking = config.get('tracking', {}) or {}

    logger.info(f"Snapshot directory: {host.get('snapshot_directory', 'Not Set')}")
    logger.info(f"Base URL: {host.get('base_url', 'https://chatgpt.com')}")
    logger.info(f"Sidebar page size: {host.get('page_size', 28)}")
    logger.info(f"Output: {Path(export.get('output_directory', './exports')) / export.get('subfolder', 'chatgpt-exports')}")
    logger.info(f"State file: {tracking.get('state_file', './.chat-sync-state.json')}")

    for key, value in sorted((config.get('sync', {}) or {}).items()):
        logger.info(f"sync.{key} = {value}")

    overrides = config.get('selectors', {}) or {}
    if overrides:
        logger.info(f"Selector overrides: {', '.join(sorted(overrides))}")


__all__ = [
    'LOGGER_NAME',
    'setup_logging',
    'resolve_level',
    'format_duration',
    'ProgressTracker',
    'log_section',
    'log_config'
]
