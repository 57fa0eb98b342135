"""JSON report export and status icons.

A report file holds either a RunSummary (has "overall_status") or a single
ValidatorReport (has "validator"); read_json_report tells them apart.
"""

from __future__ import annotations

import json
from pathlib import Path

from specguard.validators.base import ValidatorReport
from specguard.validators.runner import RunSummary

STATUS_ICONS = {
    "PASS": "✅",
    "WARNING": "⚠️",
    "FAIL": "❌",
    "ERROR": "❌",
}


def render_status_icon(status: str) -> str:
    """Icon for a check, validator or run status (❔ when unknown)."""
    return STATUS_ICONS.get(status, "❔")


def write_json_report(report: RunSummary | ValidatorReport, path: Path) -> Path:
    """Write a report as indented JSON, creating parent directories.

    Args:
        report: Run summary or single validator report.
        path: Destination file.

    Returns:
        The path written.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(report.to_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path


def read_json_report(path: Path) -> RunSummary | ValidatorReport:
    """Load a report written by write_json_report.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not a specguard report.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Not a specguard report: {path}")
    if "overall_status" in data:
        return RunSummary.from_dict(data)
    if "validator" in data:
        return ValidatorReport.from_dict(data)
    raise ValueError(f"Not a specguard report: {path}")
