"""Excel writer — produces the long-format entries workbook."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from timesheet_reshape import OUTPUT_COLUMNS
from timesheet_reshape.models import OutputWriteError, ReshapeReport, TimeEntry

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)

HOURS_FMT = "0.##"

ENTRIES_SHEET = "Time_Entries"
SUMMARY_SHEET = "Summary"

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[get_column_letter(c_idx)].width = min(width + 4, 40)


def _text_value(val: str) -> str:
    # Ticket names like "=SUM(...)" must not become live formulas.
    if val.startswith("'"):
        return val
    stripped = val.lstrip()
    if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
        return f"'{val}"
    return val


def _table_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name) or "Table"
    if not re.match(r"^[A-Za-z_]", cleaned):
        cleaned = f"_{cleaned}"
    return cleaned[:255]


def _write_entries_sheet(wb: Workbook, entries: Sequence[TimeEntry]) -> None:
    ws = wb.create_sheet(title=ENTRIES_SHEET)
    for c_idx, col_name in enumerate(OUTPUT_COLUMNS, 1):
        ws.cell(row=1, column=c_idx, value=col_name)
    for r_idx, entry in enumerate(entries, 2):
        ws.cell(row=r_idx, column=1, value=_text_value(entry.date))
        ws.cell(row=r_idx, column=2, value=_text_value(entry.ticket))
        hours = ws.cell(row=r_idx, column=3, value=entry.time_spent)
        hours.number_format = HOURS_FMT
    _style_header(ws, len(OUTPUT_COLUMNS))
    ws.freeze_panes = "A2"
    _auto_width(ws)
    if entries:
        ref = f"A1:{get_column_letter(len(OUTPUT_COLUMNS))}{len(entries) + 1}"
        table = Table(displayName=_table_name(ENTRIES_SHEET), ref=ref)
        table.tableStyleInfo = TableStyleInfo(
            name="TableStyleMedium9", showFirstColumn=False,
            showLastColumn=False, showRowStripes=True, showColumnStripes=False,
        )
        ws.add_table(table)


def _write_summary(wb: Workbook, report: ReshapeReport) -> None:
    ws = wb.create_sheet(title=SUMMARY_SHEET)

    ws.cell(row=1, column=1, value="timesheet-reshape — Summary").font = TITLE_FONT
    ws.merge_cells("A1:B1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"Generated {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:B2")

    rows: list[tuple[str, object]] = [
        ("Tickets", report.rows_in),
        ("Date columns", len(report.date_columns)),
        ("Cells inspected", report.cells_in),
        ("Entries written", report.entries_out),
        ("Cells skipped", report.skipped_cells),
    ]
    if report.date_columns:
        rows.append(("First date", report.date_columns[0]))
        rows.append(("Last date", report.date_columns[-1]))

    for r_idx, (label, value) in enumerate(rows, 4):
        ws.cell(row=r_idx, column=1, value=label).font = LABEL_FONT
        ws.cell(row=r_idx, column=2, value=value).font = VALUE_FONT

    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 22


# ── Public API ───────────────────────────────────────────────────


def write_entries_xlsx(
    path: Path,
    entries: Sequence[TimeEntry],
    report: ReshapeReport | None = None,
) -> Path:
    """Write *entries* (and a summary sheet) to the workbook at *path*.

    Raises
    ------
    OutputWriteError
        If the workbook cannot be saved.
    """
    if report is None:
        report = ReshapeReport()

    path = Path(path)
    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    _write_entries_sheet(wb, entries)
    _write_summary(wb, report)

    tmp_path = path.with_name(f"{path.stem}.tmp{path.suffix}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(tmp_path)
        tmp_path.replace(path)
    except OSError as exc:
        raise OutputWriteError(f"Cannot write {path}: {exc}") from exc
    return path
