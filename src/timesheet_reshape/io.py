"""I/O helpers — load wide timesheets, write entry tables and JSON artifacts."""

from __future__ import annotations

import json
import zipfile
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from timesheet_reshape import OUTPUT_COLUMNS, TICKET_COLUMN
from timesheet_reshape.models import InputReadError, OutputWriteError, TimeEntry
from timesheet_reshape.pipeline import entries_to_frame
from timesheet_reshape.utils import format_hours

_EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")

# ── Loading ──────────────────────────────────────────────────────


def _read_csv(path: Path, delimiter: str) -> pd.DataFrame:
    last_exc: Exception | None = None
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            # index_col=False keeps a trailing delimiter from turning Ticket into the index.
            return pd.read_csv(
                path,
                dtype="string",
                sep=delimiter,
                engine="c",
                index_col=False,
                encoding=encoding,
                encoding_errors="strict",
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except (UnicodeDecodeError, pd.errors.ParserError) as exc:
            last_exc = exc
    raise InputReadError(f"Could not read CSV {path} (decode or parse failed)") from last_exc


def load_table(path: Path, delimiter: str = ",") -> pd.DataFrame:
    """Load a wide timesheet from CSV or Excel, every cell as a string.

    A zero-byte or header-only CSV gives a frame with no rows.

    Raises
    ------
    InputReadError
        If *path* is missing or a directory, the extension is not
        supported, or the file cannot be decoded or parsed.
    """
    path = Path(path)
    if not path.exists():
        raise InputReadError(f"Input file not found: {path}")
    if path.is_dir():
        raise InputReadError(f"Input path is a directory, not a file: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix in (".csv", ".txt"):
            return _read_csv(path, delimiter)

        if suffix in _EXCEL_SUFFIXES:
            read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
            return read_excel(path, engine="openpyxl", dtype="string")
    except OSError as exc:
        raise InputReadError(f"Cannot open {path}: {exc}") from exc
    except (ValueError, zipfile.BadZipFile, InvalidFileException) as exc:
        raise InputReadError(f"Could not read {path}: {exc}") from exc

    raise InputReadError(f"Unsupported file type: {suffix!r}. Use .csv or .xlsx")


def _column_label(name: object) -> str:
    if isinstance(name, (datetime, pd.Timestamp)):
        if (name.hour, name.minute, name.second, name.microsecond) == (0, 0, 0, 0):
            return name.date().isoformat()
        return name.isoformat()
    if isinstance(name, date):
        return name.isoformat()
    return str(name)


def _cell_text(value: object) -> str:
    try:
        if pd.isna(cast(Any, value)):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def frame_to_rows(df: pd.DataFrame) -> list[dict[str, str]]:
    """Convert *df* into ordered ``{header: cell}`` rows.

    Keys follow the header order; NA cells become ``""``.

    Raises
    ------
    InputReadError
        If the frame has rows but no ``Ticket`` column.
    """
    labels = [_column_label(c) for c in df.columns]
    if len(df) and TICKET_COLUMN not in labels:
        raise InputReadError(f"Input has no {TICKET_COLUMN!r} column (found: {', '.join(labels)})")

    rows: list[dict[str, str]] = []
    for values in df.itertuples(index=False, name=None):
        rows.append({label: _cell_text(val) for label, val in zip(labels, values)})
    return rows


# ── Writing ──────────────────────────────────────────────────────


def write_entries_csv(path: Path, entries: Sequence[TimeEntry]) -> Path:
    """Write *entries* as ``Date,Ticket,Time Spent`` CSV to *path*.

    Raises
    ------
    OutputWriteError
        If the file or its parent directory cannot be written.
    """
    path = Path(path)
    frame = entries_to_frame(entries)
    frame["Time Spent"] = [format_hours(v) for v in frame["Time Spent"]]
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(tmp_path, index=False, columns=OUTPUT_COLUMNS, encoding="utf-8")
        tmp_path.replace(path)
    except OSError as exc:
        raise OutputWriteError(f"Cannot write {path}: {exc}") from exc
    return path


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
