"""Delimited text codec.

The delimiter is detected with :class:`csv.Sniffer` among ``,`` ``;`` and tab.
Cell text is kept as written and blank lines load as empty rows.  Blank lines at
the end of the text are dropped and short rows are padded, so every loaded
sheet is rectangular.
"""

from __future__ import annotations

import csv
import io
import logging
import os
from collections.abc import Sequence

from tabelle._errors import EditError, SheetLoadError, SheetSaveError
from tabelle._options import SheetOptions
from tabelle._sheet import Sheet
from tabelle.calc._functions import FunctionRegistry
from tabelle.calc._values import serialize_value

logger = logging.getLogger(__name__)

KNOWN_DELIMITERS = ",;\t"
_SNIFF_SAMPLE = 8192


def sniff_delimiter(text: str) -> str:
    """Guess the delimiter of *text*, defaulting to a comma."""
    try:
        dialect = csv.Sniffer().sniff(text[:_SNIFF_SAMPLE], delimiters=KNOWN_DELIMITERS)
        return dialect.delimiter
    except csv.Error:
        logger.debug("CSV delimiter detection failed, defaulting to comma")
        return ","


def read_rows(text: str, delimiter: str | None = None) -> list[list[str]]:
    """Split delimited *text* into rows of cell texts, without trailing blank lines."""
    if delimiter is None:
        delimiter = sniff_delimiter(text)
    rows: list[list[str]] = []
    for record in csv.reader(io.StringIO(text), delimiter=delimiter):
        rows.append(record)
    while rows and not rows[-1]:
        rows.pop()
    return rows


def loads_csv(
    text: str,
    *,
    header: bool = False,
    delimiter: str | None = None,
    options: SheetOptions | None = None,
    functions: FunctionRegistry | None = None,
) -> Sheet:
    """Build a sheet from delimited text.

    With ``header=True`` the first row becomes the column names.
    """
    try:
        rows = read_rows(text, delimiter)
    except csv.Error as e:
        raise SheetLoadError(f"Malformed CSV: {e}") from e
    names: Sequence[str | None] | None = None
    if header and rows:
        names = [name.strip() or None for name in rows.pop(0)]
    if not rows and not names:
        raise SheetLoadError("No cells found")
    try:
        sheet = Sheet.from_rows(rows, column_names=names, options=options, functions=functions)
    except EditError as e:
        raise SheetLoadError(f"Invalid header row: {e}") from e
    logger.debug("Parsed CSV into %d rows x %d columns", sheet.n_rows, sheet.n_cols)
    return sheet


def load_csv(
    path: str | os.PathLike[str],
    *,
    header: bool = False,
    delimiter: str | None = None,
    encoding: str = "utf-8",
    options: SheetOptions | None = None,
    functions: FunctionRegistry | None = None,
) -> Sheet:
    """Read a delimited file into a new sheet."""
    try:
        with open(path, encoding=encoding, newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SheetLoadError(f"Cannot read {os.fspath(path)!r}: {e}") from e
    logger.debug("Loading CSV from %s", os.fspath(path))
    return loads_csv(text, header=header, delimiter=delimiter, options=options, functions=functions)


def dumps_csv(
    sheet: Sheet,
    *,
    formulas: bool = False,
    header: bool = False,
    delimiter: str = ",",
) -> str:
    """Serialize *sheet* as delimited text.

    Literal cells are written as entered.  Formula cells are written as their
    computed value unless ``formulas=True``, in which case the formula text
    is kept.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    snap = sheet.snapshot()
    if header:
        writer.writerow(snap.column_names)
    for row in snap.rows:
        writer.writerow(
            [
                cell.raw if formulas or not cell.is_formula else serialize_value(cell.value)
                for cell in row
            ]
        )
    return buf.getvalue()


def save_csv(
    sheet: Sheet,
    path: str | os.PathLike[str],
    *,
    formulas: bool = False,
    header: bool = False,
    delimiter: str = ",",
    encoding: str = "utf-8",
) -> None:
    text = dumps_csv(sheet, formulas=formulas, header=header, delimiter=delimiter)
    try:
        with open(path, "w", encoding=encoding, newline="") as f:
            f.write(text)
    except OSError as e:
        raise SheetSaveError(f"Cannot write {os.fspath(path)!r}: {e}") from e
    logger.debug("Saved CSV to %s", os.fspath(path))
