"""CLI integration tests for timesheet-reshape."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from openpyxl import load_workbook
from typer.testing import CliRunner

import timesheet_reshape.cli as cli_mod
from timesheet_reshape import __version__
from timesheet_reshape.cli import EXIT_READ_FAILED, EXIT_UNEXPECTED, EXIT_WRITE_FAILED, app
from timesheet_reshape.models import OutputWriteError

runner = CliRunner()

WIDE_CSV = (
    "Ticket,2025-05-01,2025-05-02\n"
    "T1,2,0\n"
    "T2,,3.5\n"
)


def _write_csv(tmp_path: Path, name: str, rows: str) -> Path:
    path = tmp_path / name
    path.write_text(rows, encoding="utf-8")
    return path


def test_version_flag_prints_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_writes_long_format_csv(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    out_path = tmp_path / "output.csv"

    result = runner.invoke(
        app, ["run", "--input", str(csv_path), "--output", str(out_path), "--quiet"]
    )

    assert result.exit_code == 0, result.output
    assert out_path.read_text(encoding="utf-8").splitlines() == [
        "Date,Ticket,Time Spent",
        "2025-05-01,T1,2",
        "2025-05-02,T2,3.5",
    ]


def test_run_reports_progress_counts(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    out_path = tmp_path / "output.csv"

    result = runner.invoke(app, ["run", "-i", str(csv_path), "-o", str(out_path)])

    assert result.exit_code == 0, result.output
    assert "Found 2 records" in result.output
    assert "2 time entries" in result.output


def test_run_quiet_prints_nothing_on_success(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)

    result = runner.invoke(
        app, ["run", "-i", str(csv_path), "-o", str(tmp_path / "out.csv"), "-q"]
    )

    assert result.exit_code == 0
    assert result.output == ""


def test_run_with_report_dir_writes_report_and_manifest(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    out_path = tmp_path / "output.csv"
    report_dir = tmp_path / "reports"

    result = runner.invoke(
        app,
        [
            "run", "-i", str(csv_path), "-o", str(out_path),
            "--report-dir", str(report_dir), "-q",
        ],
    )

    assert result.exit_code == 0, result.output
    report = json.loads((report_dir / "reshape_report.json").read_text(encoding="utf-8"))
    manifest = json.loads((report_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert report["entries_out"] == 2
    assert report["skipped_cells"] == 2
    assert manifest["status"] == "success"
    assert manifest["error_phase"] is None
    assert manifest["rows_in"] == 2
    assert manifest["entries_out"] == 2
    assert len(manifest["sha256"]) == 64
    assert manifest["output_path"] == str(out_path.resolve())


def test_run_writes_xlsx_when_output_suffix_is_xlsx(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    out_path = tmp_path / "entries.xlsx"

    result = runner.invoke(app, ["run", "-i", str(csv_path), "-o", str(out_path), "-q"])

    assert result.exit_code == 0, result.output
    ws = load_workbook(out_path)["Time_Entries"]
    assert ws.max_row == 3
    assert ws["B3"].value == "T2"


def test_run_semicolon_delimiter(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV.replace(",", ";"))
    out_path = tmp_path / "output.csv"

    result = runner.invoke(
        app, ["run", "-i", str(csv_path), "-o", str(out_path), "-d", ";", "-q"]
    )

    assert result.exit_code == 0, result.output
    assert len(out_path.read_text(encoding="utf-8").splitlines()) == 3


def test_run_header_only_input_writes_header_only_output(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "header.csv", "Ticket,2025-05-01\n")
    out_path = tmp_path / "output.csv"

    result = runner.invoke(app, ["run", "-i", str(csv_path), "-o", str(out_path), "-q"])

    assert result.exit_code == 0, result.output
    assert out_path.read_text(encoding="utf-8").splitlines() == ["Date,Ticket,Time Spent"]


def test_run_missing_input_exits_with_read_code(tmp_path: Path) -> None:
    out_path = tmp_path / "output.csv"
    report_dir = tmp_path / "reports"

    result = runner.invoke(
        app,
        [
            "run", "-i", str(tmp_path / "missing.csv"), "-o", str(out_path),
            "--report-dir", str(report_dir), "-q",
        ],
    )

    assert result.exit_code == EXIT_READ_FAILED
    assert "read failed" in result.output
    assert not out_path.exists()
    manifest = json.loads((report_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
    assert manifest["error_phase"] == "read"
    assert "not found" in manifest["error_message"]
    assert not (report_dir / "reshape_report.json").exists()


def test_run_without_ticket_column_exits_with_read_code(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "bad.csv", "Task,2025-05-01\nT1,2\n")
    out_path = tmp_path / "output.csv"

    result = runner.invoke(app, ["run", "-i", str(csv_path), "-o", str(out_path), "-q"])

    assert result.exit_code == EXIT_READ_FAILED
    assert "Ticket" in result.output
    assert not out_path.exists()


def test_run_unwritable_output_exits_with_write_code(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    report_dir = tmp_path / "reports"

    result = runner.invoke(
        app,
        [
            "run", "-i", str(csv_path), "-o", str(blocker / "output.csv"),
            "--report-dir", str(report_dir), "-q",
        ],
    )

    assert result.exit_code == EXIT_WRITE_FAILED
    assert "write failed" in result.output
    manifest = json.loads((report_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["error_phase"] == "write"
    assert manifest["rows_in"] == 2
    assert manifest["entries_out"] == 0


def test_run_unsupported_output_suffix_is_write_failure(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)

    result = runner.invoke(
        app, ["run", "-i", str(csv_path), "-o", str(tmp_path / "out.json"), "-q"]
    )

    assert result.exit_code == EXIT_WRITE_FAILED
    assert "Unsupported output type" in result.output


def test_run_write_error_from_writer_is_reported(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)

    def _boom(path: Path, entries: object) -> Path:
        raise OutputWriteError("disk-full")

    monkeypatch.setattr(cli_mod, "write_entries_csv", _boom)

    result = runner.invoke(
        app, ["run", "-i", str(csv_path), "-o", str(tmp_path / "out.csv"), "-q"]
    )

    assert result.exit_code == EXIT_WRITE_FAILED
    assert "disk-full" in result.output


def test_run_unexpected_error_exits_with_code_1(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)

    def _boom(rows: object) -> list[object]:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(cli_mod, "transform", _boom)

    result = runner.invoke(
        app, ["run", "-i", str(csv_path), "-o", str(tmp_path / "out.csv"), "-q"]
    )

    assert result.exit_code == EXIT_UNEXPECTED
    assert "Unexpected internal error: kaboom" in result.output


def test_validate_prints_summary_without_writing_output(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)

    result = runner.invoke(app, ["validate", "-i", str(csv_path)])

    assert result.exit_code == 0, result.output
    assert "Timesheet Summary" in result.output
    assert "Entries" in result.output
    assert sorted(p.name for p in tmp_path.iterdir()) == ["may.csv"]


def test_validate_with_report_dir_writes_artifacts(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    report_dir = tmp_path / "reports"

    result = runner.invoke(
        app, ["validate", "-i", str(csv_path), "--report-dir", str(report_dir), "-q"]
    )

    assert result.exit_code == 0, result.output
    report = json.loads((report_dir / "reshape_report.json").read_text(encoding="utf-8"))
    manifest = json.loads((report_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert report["date_columns"] == ["2025-05-01", "2025-05-02"]
    assert manifest["output_path"] == ""
    assert manifest["entries_out"] == 2


def test_validate_missing_input_exits_with_read_code(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate", "-i", str(tmp_path / "missing.csv")])

    assert result.exit_code == EXIT_READ_FAILED
    assert "not found" in result.output


def test_run_trailing_comma_export_keeps_tickets_and_dates(tmp_path: Path) -> None:
    csv_path = _write_csv(
        tmp_path, "export.csv", "Ticket,2025-05-01,2025-05-02\nT1,2,0,\nT2,,3.5,\n"
    )
    out_path = tmp_path / "output.csv"

    result = runner.invoke(app, ["run", "-i", str(csv_path), "-o", str(out_path), "-q"])

    assert result.exit_code == 0, result.output
    assert out_path.read_text(encoding="utf-8").splitlines() == [
        "Date,Ticket,Time Spent",
        "2025-05-01,T1,2",
        "2025-05-02,T2,3.5",
    ]


def test_validate_unwritable_report_dir_exits_with_code_1(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    report_dir = tmp_path / "reports"
    report_dir.write_text("not a directory", encoding="utf-8")

    result = runner.invoke(
        app, ["validate", "-i", str(csv_path), "--report-dir", str(report_dir), "-q"]
    )

    assert result.exit_code == EXIT_UNEXPECTED
    assert not isinstance(result.exception, FileExistsError)
    assert "Unexpected internal error" in result.output
    assert "Cannot write manifest" in result.output


def test_read_failure_keeps_exit_code_when_manifest_cannot_be_written(tmp_path: Path) -> None:
    report_dir = tmp_path / "reports"
    report_dir.write_text("not a directory", encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "run", "-i", str(tmp_path / "missing.csv"), "-o", str(tmp_path / "out.csv"),
            "--report-dir", str(report_dir), "-q",
        ],
    )

    assert result.exit_code == EXIT_READ_FAILED
    assert "read failed" in result.output
    assert "Cannot write manifest" in result.output


def test_run_unwritable_report_dir_after_output_exits_with_code_1(tmp_path: Path) -> None:
    csv_path = _write_csv(tmp_path, "may.csv", WIDE_CSV)
    report_dir = tmp_path / "reports"
    report_dir.write_text("not a directory", encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "run", "-i", str(csv_path), "-o", str(tmp_path / "out.csv"),
            "--report-dir", str(report_dir), "-q",
        ],
    )

    assert result.exit_code == EXIT_UNEXPECTED
    assert "Unexpected internal error" in result.output
