"""
Output formatting and report generation
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .errors import ScannerError
from .results import Report


class OutputEngine:
    """Handle output formatting and report generation"""

    @staticmethod
    def format_json(report: Report, metadata: Dict[str, Any] = None) -> Dict[str, Any]:
        """Format a run report as a JSON-serializable dict"""

        if metadata is None:
            metadata = {}

        from .. import __version__

        return {
            "metadata": {
                "tool": "hostguard",
                "version": __version__,
                "target": report.target,
                "started_at": report.started_at,
                "finished_at": report.finished_at,
                **metadata
            },
            "summary": report.summary(),
            "controls": [result.to_dict() for result in report.controls]
        }

    @staticmethod
    def save_report(data: Dict[str, Any], output_file: str):
        """Write the report as indented JSON, creating parent directories.

        Raises:
            ScannerError: the file cannot be written.
        """
        output_path = Path(output_file)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as e:
            logging.error(f"Cannot write report to {output_path}: {e}")
            raise ScannerError(f"Cannot write report to {output_path}: {e}") from e
        logging.info(f"Report saved to: {output_path}")
