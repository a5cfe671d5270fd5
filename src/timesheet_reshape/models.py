"""Data models and error types used across the package."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from numbers import Integral, Real
from typing import Any, Literal

Phase = Literal["read", "write"]


# ── Errors ───────────────────────────────────────────────────────


class ReshapeError(Exception):
    """A run-terminating failure, tagged with the phase it happened in."""

    phase: Phase

    def __init__(self, message: str, *, phase: Phase) -> None:
        super().__init__(message)
        self.phase = phase


class InputReadError(ReshapeError):
    """The input table could not be opened, decoded or parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, phase="read")


class OutputWriteError(ReshapeError):
    """The output table could not be written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, phase="write")


# ── Validation helpers ───────────────────────────────────────────


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


# ── Records ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class TimeEntry:
    """One logged ``(date, ticket, hours)`` observation.

    Contract invariant: ``time_spent`` is finite and strictly positive.
    """

    date: str
    ticket: str
    time_spent: float

    def __post_init__(self) -> None:
        if not isinstance(self.date, str):
            raise TypeError("date must be a string")
        if not isinstance(self.ticket, str):
            raise TypeError("ticket must be a string")
        if isinstance(self.time_spent, bool) or not isinstance(self.time_spent, Real):
            raise TypeError("time_spent must be a number")
        hours = float(self.time_spent)
        if not math.isfinite(hours) or hours <= 0:
            raise ValueError("time_spent must be a finite number > 0")
        object.__setattr__(self, "time_spent", hours)

    def to_dict(self) -> dict[str, Any]:
        return {
            "Date": self.date,
            "Ticket": self.ticket,
            "Time Spent": self.time_spent,
        }


@dataclass
class ReshapeReport:
    """Counts describing a single reshape.

    Contract invariants: ``cells_in == rows_in * len(date_columns)`` and
    ``skipped_cells == cells_in - entries_out``.
    """

    rows_in: int = 0
    date_columns: list[str] = field(default_factory=list)
    cells_in: int = 0
    entries_out: int = 0
    skipped_cells: int = 0

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.date_columns = _to_string_list(self.date_columns, "date_columns")
        self.cells_in = _to_non_negative_int(self.cells_in, "cells_in")
        self.entries_out = _to_non_negative_int(self.entries_out, "entries_out")
        self.skipped_cells = _to_non_negative_int(self.skipped_cells, "skipped_cells")
        if self.cells_in != self.rows_in * len(self.date_columns):
            raise ValueError("cells_in must equal rows_in * len(date_columns)")
        if self.entries_out > self.cells_in:
            raise ValueError("entries_out must be <= cells_in")
        if self.skipped_cells != self.cells_in - self.entries_out:
            raise ValueError("skipped_cells must equal cells_in - entries_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "date_columns": list(self.date_columns),
            "cells_in": self.cells_in,
            "entries_out": self.entries_out,
            "skipped_cells": self.skipped_cells,
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single run."""

    tool: str = "timesheet-reshape"
    version: str = ""
    run_id: str = ""
    input_path: str = ""
    output_path: str = ""
    created_at_utc: str = ""
    rows_in: int = 0
    entries_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_phase: Phase | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.entries_out = _to_non_negative_int(self.entries_out, "entries_out")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")
        if self.error_phase not in {None, "read", "write"}:
            raise ValueError("error_phase must be 'read', 'write' or None")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "run_id": self.run_id,
            "input_path": self.input_path,
            "output_path": self.output_path,
            "created_at_utc": self.created_at_utc,
            "rows_in": self.rows_in,
            "entries_out": self.entries_out,
            "sha256": self.sha256,
            "status": self.status,
            "error_phase": self.error_phase,
            "error_message": self.error_message,
        }
