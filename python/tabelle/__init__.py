"""tabelle - a spreadsheet engine with formulas and incremental recalculation.

Usage::

    from tabelle import Sheet, load_sheet, save_sheet

    sheet = load_sheet("prices.csv")
    sheet.set_cell_text(3, 1, "=SUM(B1:B3)")
    print(sheet.display_text(3, 1))
    save_sheet(sheet, "prices.xlsx")
"""

from tabelle._commands import Session, parse_command
from tabelle._csv import dumps_csv, load_csv, loads_csv, save_csv
from tabelle._errors import (
    CommandError,
    DuplicateColumnError,
    EditError,
    OutOfBoundsError,
    ParseError,
    ParseFailure,
    SheetIOError,
    SheetLoadError,
    SheetSaveError,
    TabelleError,
    UnsupportedFormatError,
)
from tabelle._io import load_sheet, save_sheet
from tabelle._options import SheetOptions
from tabelle._sheet import Sheet
from tabelle._snapshot import CellView, ColumnView, SheetSnapshot
from tabelle._xlsx import load_xlsx, save_xlsx
from tabelle.calc import (
    EMPTY,
    CellDelta,
    Empty,
    Error,
    ErrorKind,
    FunctionRegistry,
    Number,
    RecalcResult,
    Text,
    Value,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CellDelta",
    "CellView",
    "ColumnView",
    "CommandError",
    "DuplicateColumnError",
    "EMPTY",
    "EditError",
    "Empty",
    "Error",
    "ErrorKind",
    "FunctionRegistry",
    "Number",
    "OutOfBoundsError",
    "ParseError",
    "ParseFailure",
    "RecalcResult",
    "Session",
    "Sheet",
    "SheetIOError",
    "SheetLoadError",
    "SheetOptions",
    "SheetSaveError",
    "SheetSnapshot",
    "TabelleError",
    "Text",
    "UnsupportedFormatError",
    "Value",
    "dumps_csv",
    "load_csv",
    "load_sheet",
    "load_xlsx",
    "loads_csv",
    "parse_command",
    "save_csv",
    "save_sheet",
    "save_xlsx",
]
