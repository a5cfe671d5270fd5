"""CLI entry point for timesheet-reshape."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from timesheet_reshape import __version__
from timesheet_reshape.io import frame_to_rows, load_table, write_entries_csv, write_json
from timesheet_reshape.models import (
    InputReadError,
    OutputWriteError,
    Phase,
    ReshapeError,
    ReshapeReport,
    RunManifest,
    TimeEntry,
)
from timesheet_reshape.pipeline import summarize, transform
from timesheet_reshape.qc import write_reshape_report
from timesheet_reshape.report import write_entries_xlsx
from timesheet_reshape.utils import sha256_file, utcnow_iso

app = typer.Typer(
    name="tsreshape",
    help="timesheet-reshape — Turn wide timesheets into one row per logged entry.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

EXIT_UNEXPECTED = 1
EXIT_READ_FAILED = 2
EXIT_WRITE_FAILED = 3

_PHASE_EXIT_CODES = {"read": EXIT_READ_FAILED, "write": EXIT_WRITE_FAILED}


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"timesheet-reshape v{__version__}")
        raise typer.Exit()


def _write_entries(path: Path, entries: Sequence[TimeEntry], report: ReshapeReport) -> Path:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return write_entries_csv(path, entries)
    if suffix == ".xlsx":
        return write_entries_xlsx(path, entries, report)
    raise OutputWriteError(f"Unsupported output type: {suffix!r}. Use .csv or .xlsx")


def _write_manifest(
    report_dir: Path,
    input_file: Path,
    output_file: Path | None,
    run_id: str,
    created_at: str,
    report: ReshapeReport,
    *,
    status: str = "success",
    error_phase: Phase | None = None,
    error_message: str = "",
) -> Path:
    sha256 = ""
    try:
        sha256 = sha256_file(input_file)
    except OSError:
        pass

    manifest = RunManifest(
        version=__version__,
        run_id=run_id,
        input_path=str(input_file.resolve()),
        output_path=str(output_file.resolve()) if output_file else "",
        created_at_utc=created_at,
        rows_in=report.rows_in,
        entries_out=report.entries_out if status == "success" else 0,
        sha256=sha256,
        status=status,
        error_phase=error_phase,
        error_message=error_message,
    )
    return write_json(report_dir / "run_manifest.json", manifest.to_dict())


def _write_failure_manifest(
    report_dir: Path,
    input_file: Path,
    output_file: Path | None,
    run_id: str,
    created_at: str,
    report: ReshapeReport,
    *,
    error_phase: Phase | None,
    error_message: str,
) -> None:
    # A manifest write failure is reported; the caller keeps its own exit code.
    try:
        manifest_path = _write_manifest(
            report_dir,
            input_file,
            output_file,
            run_id,
            created_at,
            report,
            status="failed",
            error_phase=error_phase,
            error_message=error_message,
        )
    except OSError as exc:
        _err(f"Cannot write manifest to {report_dir}: {exc}")
        return
    console.print(f"  Manifest -> {manifest_path}")


def _fail(
    exc: ReshapeError,
    *,
    report_dir: Path | None,
    input_file: Path,
    output_file: Path | None,
    run_id: str,
    created_at: str,
    report: ReshapeReport | None = None,
) -> typer.Exit:
    _err(f"{exc.phase} failed: {exc}")
    if report_dir is not None:
        _write_failure_manifest(
            report_dir,
            input_file,
            output_file,
            run_id,
            created_at,
            report or ReshapeReport(),
            error_phase=exc.phase,
            error_message=str(exc),
        )
    return typer.Exit(code=_PHASE_EXIT_CODES[exc.phase])


def _read_rows(input_file: Path, delimiter: str) -> list[dict[str, str]]:
    raw_df = load_table(input_file, delimiter=delimiter)
    return frame_to_rows(raw_df)


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """timesheet-reshape CLI."""


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_file: Path = typer.Option(
        Path("may-2025.csv"), "--input", "-i",
        help="Wide timesheet: a Ticket column plus one column per date (CSV or XLSX).",
    ),
    output_file: Path = typer.Option(
        Path("output.csv"), "--output", "-o",
        help="Long-format output file (.csv or .xlsx).",
    ),
    delimiter: str = typer.Option(
        ",", "--delimiter", "-d",
        help="Field delimiter for CSV input.",
    ),
    report_dir: Path | None = typer.Option(
        None, "--report-dir",
        help="Directory for reshape_report.json + run_manifest.json.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; errors are still printed.",
    ),
) -> None:
    """Reshape a wide timesheet into Date / Ticket / Time Spent rows."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    run_id = created_at

    if not quiet:
        console.print(Panel(
            f"[bold]timesheet-reshape[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {output_file}",
            title="Reshape Start", border_style="blue",
        ))

    # ── Read ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Reading input file …")
    try:
        rows = _read_rows(input_file, delimiter)
    except InputReadError as exc:
        raise _fail(
            exc,
            report_dir=report_dir,
            input_file=input_file,
            output_file=output_file,
            run_id=run_id,
            created_at=created_at,
        )

    echo(f"  Found {len(rows)} records.")

    report = ReshapeReport()
    try:
        # ── Transform ────────────────────────────────────────────
        entries = transform(rows)
        report = summarize(rows, entries)
        echo(
            f"  Transposed into {len(entries)} time entries "
            f"({report.skipped_cells} empty or non-positive cells skipped)"
        )

        # ── Write ────────────────────────────────────────────────
        echo(f"[blue]>[/blue] Writing {output_file.name} …")
        try:
            out_path = _write_entries(output_file, entries, report)
        except OutputWriteError as exc:
            raise _fail(
                exc,
                report_dir=report_dir,
                input_file=input_file,
                output_file=output_file,
                run_id=run_id,
                created_at=created_at,
                report=report,
            )
        echo(f"  Entries  -> {out_path}")

        if report_dir is not None:
            report_path = write_reshape_report(report_dir, report)
            manifest_path = _write_manifest(
                report_dir, input_file, output_file, run_id, created_at, report
            )
            echo(f"  Report   -> {report_path}")
            echo(f"  Manifest -> {manifest_path}")

        if not quiet:
            console.print(Panel(
                f"[green]Done[/green] — {len(entries)} entries -> {out_path}",
                title="Reshape Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        message = f"Unexpected internal error: {exc}"
        _err(message)
        if report_dir is not None:
            _write_failure_manifest(
                report_dir,
                input_file,
                output_file,
                run_id,
                created_at,
                report,
                error_phase=None,
                error_message=message,
            )
        raise typer.Exit(code=EXIT_UNEXPECTED)


# ── validate command ─────────────────────────────────────────────


@app.command()
def validate(
    input_file: Path = typer.Option(
        Path("may-2025.csv"), "--input", "-i",
        help="Wide timesheet: a Ticket column plus one column per date (CSV or XLSX).",
    ),
    delimiter: str = typer.Option(
        ",", "--delimiter", "-d",
        help="Field delimiter for CSV input.",
    ),
    report_dir: Path | None = typer.Option(
        None, "--report-dir",
        help="Directory for reshape_report.json + run_manifest.json.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress the summary table; errors are still printed.",
    ),
) -> None:
    """Read and reshape in memory, then report counts without writing output.

    Exit 0 = readable input, exit 2 = input could not be read,
    exit 1 = unexpected error (e.g. an unwritable --report-dir).
    """
    created_at = utcnow_iso()
    run_id = created_at

    try:
        rows = _read_rows(input_file, delimiter)
    except InputReadError as exc:
        raise _fail(
            exc,
            report_dir=report_dir,
            input_file=input_file,
            output_file=None,
            run_id=run_id,
            created_at=created_at,
        )

    report = ReshapeReport()
    try:
        entries = transform(rows)
        report = summarize(rows, entries)

        if report_dir is not None:
            report_path = write_reshape_report(report_dir, report)
            manifest_path = _write_manifest(
                report_dir, input_file, None, run_id, created_at, report
            )
        if quiet:
            return

        tbl = RichTable(title="Timesheet Summary", show_lines=True)
        tbl.add_column("Check", style="bold")
        tbl.add_column("Result")
        tbl.add_row("Tickets", str(report.rows_in))
        tbl.add_row("Date columns", str(len(report.date_columns)))
        if report.date_columns:
            tbl.add_row("Date range", f"{report.date_columns[0]} … {report.date_columns[-1]}")
        tbl.add_row("Cells inspected", str(report.cells_in))
        tbl.add_row("Entries", str(report.entries_out))
        tbl.add_row("Skipped", str(report.skipped_cells))
        if report.rows_in and not report.entries_out:
            tbl.add_row("Warning", "[yellow]no positive hours found[/yellow]")
        console.print(tbl)

        if report_dir is not None:
            console.print(f"  Report   -> {report_path}")
            console.print(f"  Manifest -> {manifest_path}")
    except typer.Exit:
        raise
    except Exception as exc:
        message = f"Unexpected internal error: {exc}"
        _err(message)
        if report_dir is not None:
            _write_failure_manifest(
                report_dir,
                input_file,
                None,
                run_id,
                created_at,
                report,
                error_phase=None,
                error_message=message,
            )
        raise typer.Exit(code=EXIT_UNEXPECTED)
