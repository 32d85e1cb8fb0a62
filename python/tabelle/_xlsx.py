"""XLSX codec backed by openpyxl.

Only the active worksheet is read.  Formula cells keep their source text,
column widths and frozen rows survive a round trip.
"""

from __future__ import annotations

import datetime
import logging
import os
import zipfile
from typing import Any

import openpyxl
from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from tabelle._errors import EditError, SheetLoadError, SheetSaveError
from tabelle._options import DEFAULT_OPTIONS, SheetOptions
from tabelle._sheet import Sheet
from tabelle.calc._functions import FunctionRegistry
from tabelle.calc._references import parse_cell_name
from tabelle.calc._values import Empty, Number, serialize_value

logger = logging.getLogger(__name__)


def _cell_text(value: Any, options: SheetOptions) -> str:
    """Raw text for an openpyxl cell value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return serialize_value(Number(value))
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    text = str(value)
    if text.startswith("=") and options.formula_marker != "=":
        return options.formula_marker + text[1:]
    return text


def load_xlsx(
    path: str | os.PathLike[str],
    *,
    header: bool = False,
    options: SheetOptions | None = None,
    functions: FunctionRegistry | None = None,
) -> Sheet:
    """Read the active worksheet of an .xlsx file into a new sheet.

    With ``header=True`` the first row becomes the column names.
    """
    opts = options if options is not None else DEFAULT_OPTIONS
    try:
        wb = openpyxl.load_workbook(os.fspath(path), data_only=False)
    except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError) as e:
        raise SheetLoadError(f"Cannot read {os.fspath(path)!r}: {e}") from e

    try:
        ws = wb.active
        if ws is None:
            raise SheetLoadError(f"{os.fspath(path)!r} has no worksheet")
        rows = [
            [_cell_text(v, opts) for v in row]
            for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=ws.max_column, values_only=True)
        ]
        widths: dict[int, int] = {}
        for letter, dim in ws.column_dimensions.items():
            if not dim.width:
                continue
            # One <col> element may cover a run of columns.
            first = dim.min or column_index_from_string(letter)
            for index in range(first, (dim.max or first) + 1):
                widths[index - 1] = max(1, round(dim.width))
        frozen = 0
        if ws.freeze_panes:
            frozen = parse_cell_name(ws.freeze_panes)[0]
        # An untouched workbook reports a single empty, unstyled cell.
        untouched = rows == [[""]] and not ws.cell(row=1, column=1).has_style
    finally:
        wb.close()

    if untouched:
        rows = []

    names = None
    if header and rows:
        names = [name or None for name in rows.pop(0)]
        frozen = max(0, frozen - 1)

    try:
        sheet = Sheet.from_rows(rows, column_names=names, options=opts, functions=functions)
    except EditError as e:
        raise SheetLoadError(f"Invalid header row: {e}") from e
    for col, width in widths.items():
        if col < sheet.n_cols:
            sheet.set_column_width(col, width)
    if frozen:
        sheet.fix_rows(min(frozen, sheet.n_rows))
    logger.debug("Loaded XLSX %s: %d rows x %d columns", os.fspath(path), sheet.n_rows, sheet.n_cols)
    return sheet


def _xlsx_value(raw: str, is_formula: bool, value: Any, options: SheetOptions) -> Any:
    if is_formula:
        return "=" + raw[len(options.formula_marker):]
    if isinstance(value, Empty):
        return None
    if isinstance(value, Number):
        return int(value.value) if value.value.is_integer() else value.value
    return raw


def save_xlsx(
    sheet: Sheet,
    path: str | os.PathLike[str],
    *,
    header: bool = False,
    title: str = "Sheet1",
) -> None:
    """Write *sheet* to an .xlsx file.

    Numbers are stored as numbers, formulas as formulas.  Column widths and
    the fixed rows (as frozen panes) are written too.  An empty bottom-right
    cell is given a text format so trailing empty rows and columns reload.
    """
    snap = sheet.snapshot()
    opts = sheet.options
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title

    if header:
        ws.append(snap.column_names)
    for row in snap.rows:
        ws.append([_xlsx_value(c.raw, c.is_formula, c.value, opts) for c in row])
    if snap.n_rows and snap.n_cols:
        # openpyxl skips empty unstyled cells, so a styled corner keeps the sheet's extent.
        corner = ws.cell(row=ws.max_row, column=snap.n_cols)
        if corner.value is None:
            corner.number_format = "@"

    for col, width in enumerate(snap.column_widths):
        ws.column_dimensions[get_column_letter(col + 1)].width = width

    frozen = snap.fixed_rows + (1 if header else 0)
    if frozen:
        ws.freeze_panes = f"A{frozen + 1}"

    try:
        wb.save(os.fspath(path))
    except OSError as e:
        raise SheetSaveError(f"Cannot write {os.fspath(path)!r}: {e}") from e
    logger.debug("Saved XLSX to %s", os.fspath(path))
