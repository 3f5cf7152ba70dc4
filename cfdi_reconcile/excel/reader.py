from __future__ import annotations

import logging
import zipfile
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, time
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..services.progress import RowProgress

"""Streaming spreadsheet reader.

The workbook is opened with openpyxl in read-only mode so rows are parsed from
the sheet XML one at a time; neither the key extraction nor the row count ever
holds more than the current row. The first row of a sheet is its header.

pandas is only used for the small ``preview_sheet`` frame shown by the CLI
inspect mode.
"""

__all__ = [
    "SpreadsheetError",
    "SpreadsheetOpenError",
    "SheetNotFoundError",
    "SheetEmptyError",
    "ColumnNotFoundError",
    "open_sheet",
    "iter_sheet_rows",
    "cell_to_text",
    "extract_keys",
    "count_rows",
    "preview_sheet",
]

logger = logging.getLogger(__name__)


class SpreadsheetError(Exception):
    """Base class for spreadsheet failures (all fatal for the run)."""

class SpreadsheetOpenError(SpreadsheetError):
    """Raised when the workbook file is missing or unreadable."""

class SheetNotFoundError(SpreadsheetError):
    """Raised when the requested sheet is not in the workbook."""

class SheetEmptyError(SpreadsheetError):
    """Raised when a sheet has no header row."""

class ColumnNotFoundError(SpreadsheetError):
    """Raised when a header label is absent from the header row."""


@contextmanager
def open_sheet(path: Path | str, sheet_name: str) -> Iterator[Any]:
    """Open ``sheet_name`` of the workbook at ``path`` in streaming mode.

    The workbook is closed when the block exits, including on error.
    """
    path = Path(path)
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except FileNotFoundError as e:
        raise SpreadsheetOpenError(f"spreadsheet not found: {path}") from e
    except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError) as e:
        raise SpreadsheetOpenError(f"cannot open spreadsheet {path}: {e}") from e
    try:
        if sheet_name not in wb.sheetnames:
            raise SheetNotFoundError(
                f"sheet '{sheet_name}' not found in {path.name} (sheets: {wb.sheetnames})"
            )
        yield wb[sheet_name]
    finally:
        wb.close()


def cell_to_text(value: Any) -> str:
    """Render a cell value the way it reads in the sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        # numeric identifiers come back as floats from some writers
        return str(int(value))
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def _row_to_texts(row: Iterable[Any]) -> list[str]:
    cells = [cell_to_text(v) for v in row]
    # populated span ends at the last non-empty cell
    while cells and cells[-1] == "":
        cells.pop()
    return cells


def iter_sheet_rows(ws: Any) -> Iterator[list[str]]:
    """Yield every row of ``ws`` (header included) as ordered string columns."""
    for row in ws.iter_rows(values_only=True):
        yield _row_to_texts(row)


def extract_keys(
    path: Path | str,
    sheet_name: str,
    column_header: str,
    *,
    progress_every: int = 100_000,
) -> set[str]:
    """Collect the distinct non-empty values of one column.

    Parameters
    ----------
    path: workbook path
    sheet_name: sheet to read
    column_header: header label of the key column (matched after stripping)
    progress_every: rows between INFO checkpoints

    Raises
    ------
    SheetEmptyError: the sheet has no (non-blank) header row
    ColumnNotFoundError: ``column_header`` is not in the header row
    """
    with open_sheet(path, sheet_name) as ws:
        rows = iter_sheet_rows(ws)
        header = [h.strip() for h in next(rows, [])]
        if not header:
            raise SheetEmptyError(f"sheet '{sheet_name}' has no header row")
        try:
            idx = header.index(column_header)
        except ValueError:
            raise ColumnNotFoundError(
                f"column '{column_header}' not found in sheet '{sheet_name}' header"
            ) from None

        keys: set[str] = set()
        with RowProgress(f"keys '{sheet_name}'", every=progress_every) as progress:
            for row in rows:
                if idx < len(row):
                    value = row[idx].strip()
                    if value:
                        keys.add(value)
                progress.tick()
        logger.info(
            f"keys: {len(keys)} distinct values in column '{column_header}' "
            f"({progress.count} rows)"
        )
        return keys


def count_rows(path: Path | str, sheet_name: str) -> int:
    """Count the data rows of a sheet (header excluded, empty sheet -> 0)."""
    with open_sheet(path, sheet_name) as ws:
        rows = ws.iter_rows(values_only=True)
        next(rows, None)
        return sum(1 for _ in rows)


def preview_sheet(path: Path | str, sheet_name: str, rows: int = 3) -> pd.DataFrame:
    """Header plus the first ``rows`` data rows, every cell as text.

    Raises the same ``SpreadsheetError`` subclasses as ``open_sheet``.
    """
    path = Path(path)
    try:
        return pd.read_excel(
            path,
            sheet_name=sheet_name,
            header=0,
            nrows=rows,
            dtype=str,
            keep_default_na=False,
            engine="openpyxl",
        )
    except FileNotFoundError as e:
        raise SpreadsheetOpenError(f"spreadsheet not found: {path}") from e
    except ValueError as e:
        # pandas reports a missing sheet as "Worksheet named '<name>' not found"
        if f"'{sheet_name}' not found" in str(e):
            raise SheetNotFoundError(f"sheet '{sheet_name}' not found in {path.name}") from e
        raise SpreadsheetOpenError(f"cannot open spreadsheet {path}: {e}") from e
    except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError) as e:
        raise SpreadsheetOpenError(f"cannot open spreadsheet {path}: {e}") from e
