"""
Output formatting and report generation
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .. import __version__
from .results import ScanResult
from .settings import Settings


class OutputEngine:
    """Handle output formatting and report generation"""

    @staticmethod
    def format_json(result: ScanResult, settings: Settings,
                    metadata: Dict[str, Any] = None,
                    include_snapshot: bool = True) -> Dict[str, Any]:
        """Format a scan result as a JSON report"""

        if metadata is None:
            metadata = {}

        findings = []
        suppressed = 0
        for finding in result.ranked():
            entry = finding.to_dict()
            entry["suppressed"] = settings.is_suppressed(finding)
            suppressed += entry["suppressed"]
            findings.append(entry)

        summary = result.summary()
        summary["suppressed"] = suppressed
        summary["failed_above_threshold"] = len([
            f for f in result.failures(settings.severity_threshold)
            if not settings.is_suppressed(f)
        ])

        report = {
            "metadata": {
                "tool": "cloud-security-scanner",
                "version": __version__,
                "report_timestamp": datetime.now(timezone.utc).isoformat(),
                "scan_started": result.started_at,
                "scan_finished": result.finished_at,
                "provider": settings.provider,
                "govcloud": settings.govcloud,
                "regions": list(result.scopes),
                "checks": list(result.check_ids),
                "severity_threshold": settings.severity_threshold.name,
                **metadata
            },
            "summary": summary,
            "findings": findings,
        }
        if include_snapshot:
            report["snapshot"] = result.snapshot_dict()

        return report

    @staticmethod
    def exit_code(result: ScanResult, settings: Settings) -> int:
        """1 if any unsuppressed failure reaches the severity threshold"""
        failures = [f for f in result.failures(settings.severity_threshold)
                    if not settings.is_suppressed(f)]
        return 1 if failures else 0

    @staticmethod
    def save_report(report: Dict[str, Any], output_file: str):
        """Save JSON report to file"""
        try:
            output_path = Path(output_file)
            output_path.parent.mkdir(parents=True, exist_ok=True)

            with open(output_path, 'w') as f:
                json.dump(report, f, indent=2, sort_keys=True, default=str)

            logging.info(f"Report saved to: {output_path}")

        except OSError as e:
            logging.error(f"Error saving report: {str(e)}")
            raise
