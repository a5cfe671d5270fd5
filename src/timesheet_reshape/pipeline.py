"""Wide-to-long reshape — pure functions, no side effects."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any, cast

import pandas as pd

from timesheet_reshape import OUTPUT_COLUMNS, TICKET_COLUMN
from timesheet_reshape.models import ReshapeReport, TimeEntry

# ── Cell parsing ────────────────────────────────────────────────

# Longest leading float literal; trailing text after it is ignored.
_FLOAT_PREFIX_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def parse_hours(value: object) -> float | None:
    """Parse the leading number of *value*, or return ``None``.

    ``"2h"`` reads as ``2.0``, ``" 3.5 "`` as ``3.5``; ``""`` and ``"abc"``
    have no numeric prefix and give ``None``, as does a prefix that
    overflows to infinity.
    """
    if value is None:
        return None
    try:
        if pd.isna(cast(Any, value)):
            return None
    except (TypeError, ValueError):
        pass

    match = _FLOAT_PREFIX_RE.match(str(value).lstrip())
    if match is None:
        return None
    hours = float(match.group(0))
    if not math.isfinite(hours):
        return None
    return hours


# ── Reshape ─────────────────────────────────────────────────────


def date_columns(first_row: Mapping[str, str], ticket_column: str = TICKET_COLUMN) -> list[str]:
    """Return the header labels of *first_row* other than the ticket column."""
    return [name for name in first_row if name != ticket_column]


def transform(rows: Sequence[Mapping[str, str]]) -> list[TimeEntry]:
    """Reshape wide timesheet rows into one entry per positive cell.

    The date columns come from the first row's key order and are reused
    for every row. Entries are ordered by row, then by date column.
    Empty, non-numeric, zero and negative cells produce nothing.
    """
    if not rows:
        return []

    dates = date_columns(rows[0])
    entries: list[TimeEntry] = []
    for row in rows:
        ticket = row[TICKET_COLUMN]
        for date in dates:
            hours = parse_hours(row.get(date, ""))
            if hours is None or hours <= 0:
                continue
            entries.append(TimeEntry(date=date, ticket=ticket, time_spent=hours))
    return entries


def summarize(
    rows: Sequence[Mapping[str, str]], entries: Sequence[TimeEntry]
) -> ReshapeReport:
    """Build the run report for *rows* reshaped into *entries*."""
    dates = date_columns(rows[0]) if rows else []
    cells_in = len(rows) * len(dates)
    return ReshapeReport(
        rows_in=len(rows),
        date_columns=dates,
        cells_in=cells_in,
        entries_out=len(entries),
        skipped_cells=cells_in - len(entries),
    )


def entries_to_frame(entries: Sequence[TimeEntry]) -> pd.DataFrame:
    """Return *entries* as a DataFrame with the ``Date, Ticket, Time Spent`` columns."""
    if not entries:
        return pd.DataFrame(columns=OUTPUT_COLUMNS)
    return pd.DataFrame([entry.to_dict() for entry in entries], columns=OUTPUT_COLUMNS)
