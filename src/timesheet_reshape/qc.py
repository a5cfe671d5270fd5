"""Run report persistence."""

from __future__ import annotations

from pathlib import Path

from timesheet_reshape.io import write_json
from timesheet_reshape.models import ReshapeReport


def write_reshape_report(out_dir: Path, report: ReshapeReport) -> Path:
    """Write ``reshape_report.json`` into *out_dir* and return the path."""
    return write_json(out_dir / "reshape_report.json", report.to_dict())
