"""
Export report for batch runs.

Turns the ExportResult of one batch into a report dictionary, a console
summary and a JSON file next to the exported documents.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from logger import format_duration
from models import ExportResult

MAX_CONSOLE_ERRORS = 20
RULE = "=" * 60


class ExportReport:
    """Builds and renders batch export reports."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('chat_transcript_sync.orchestrator.report')

    def generate_report(
        self,
        result: ExportResult,
        duration: float,
        export_directory: Optional[str] = None,
        exported_files: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Build the report dictionary.

        The success rate counts only conversations that were attempted;
        a batch where everything was skipped reports 1.0.

        Args:
            result: Tally of the batch run
            duration: Run duration in seconds
            export_directory: Directory receiving the documents
            exported_files: Documents written during the run

        Returns:
            Dictionary with ``summary``, ``errors``, ``files`` and ``timestamp``
        """
        attempted = result.total - result.skipped
        summary = {
            'total': result.total,
            'exported': result.exported,
            'skipped': result.skipped,
            'failed': result.failed,
            'cancelled': result.cancelled,
            'success_rate': result.exported / attempted if attempted > 0 else 1.0,
            'duration': duration,
            'duration_formatted': format_duration(duration),
            'export_directory': export_directory
        }

        self.logger.debug(f"Report built for {result.total} conversations ({len(result.errors)} errors)")
        return {
            'summary': summary,
            'errors': list(result.errors),
            'files': list(exported_files or []),
            'timestamp': datetime.now().isoformat()
        }

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """Render a report as the block printed after ``export-all``."""
        summary = report.get('summary', {})
        lines = [
            RULE,
            "EXPORT REPORT",
            RULE,
            f"  Conversations: {summary.get('total', 0)}",
            f"  Exported:      {summary.get('exported', 0)}",
            f"  Skipped:       {summary.get('skipped', 0)}",
            f"  Failed:        {summary.get('failed', 0)}",
            f"  Success:       {summary.get('success_rate', 1.0) * 100:.1f}%",
            f"  Duration:      {summary.get('duration_formatted', '0.0s')}",
        ]
        if summary.get('export_directory'):
            lines.append(f"  Directory:     {summary['export_directory']}")
        if summary.get('cancelled'):
            lines.append("  Status:        CANCELLED")

        errors = report.get('errors', [])
        if errors:
            lines.extend(["", f"Errors ({len(errors)}):"])
            lines.extend(f"  - {error}" for error in errors[:MAX_CONSOLE_ERRORS])
            if len(errors) > MAX_CONSOLE_ERRORS:
                lines.append(f"  ... and {len(errors) - MAX_CONSOLE_ERRORS} more")

        lines.append(RULE)
        return "\n".join(lines)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Write the report as JSON.

        A write failure is logged, the batch result stands regardless.
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            self.logger.error(f"Failed to write report {filepath}: {e}")
            return

        self.logger.info(f"Report written to {filepath}")
