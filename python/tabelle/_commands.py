"""The command line typed after ``:`` in the editor.

``parse_command`` turns one line into a frozen command object and
``Session.execute`` applies it to the open sheet.  Commands::

    help                    show the command overview
    new                     replace the sheet with an empty 5x5 one
    set column-width N      set the width of the cursor's column
    save PATH               save (format from the extension)
    find TEXT               move the cursor to the next cell containing TEXT
    sort COL                sort rows by column COL (letters, any case)
    fit COL                 size column COL to its contents
    fix N rows | fix 1 row  pin the first N rows against sorting
    resize W H              grow the sheet to W columns and H rows
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from tabelle._errors import CommandError
from tabelle._io import save_sheet
from tabelle._sheet import Sheet
from tabelle.calc._references import Coord, column_name_to_index, index_to_column_name

logger = logging.getLogger(__name__)

NEW_SHEET_SIZE = (5, 5)


@dataclass(frozen=True)
class Help:
    def display(self) -> str:
        return "help"


@dataclass(frozen=True)
class New:
    def display(self) -> str:
        return "new"


@dataclass(frozen=True)
class SetColumnWidth:
    width: int

    def display(self) -> str:
        return f"set column-width {self.width}"


@dataclass(frozen=True)
class Save:
    path: Path

    def display(self) -> str:
        return f"save {self.path}"


@dataclass(frozen=True)
class Find:
    text: str

    def display(self) -> str:
        return f"find {self.text}"


@dataclass(frozen=True)
class Sort:
    column: int

    def display(self) -> str:
        return f"sort {index_to_column_name(self.column)}"


@dataclass(frozen=True)
class Fit:
    column: int

    def display(self) -> str:
        return f"fit {index_to_column_name(self.column)}"


@dataclass(frozen=True)
class Fix:
    rows: int

    def display(self) -> str:
        return f"fix {self.rows} {'row' if self.rows == 1 else 'rows'}"


@dataclass(frozen=True)
class Resize:
    columns: int
    rows: int

    def display(self) -> str:
        return f"resize {self.columns} {self.rows}"


Command = Union[Help, New, SetColumnWidth, Save, Find, Sort, Fit, Fix, Resize]

COMMAND_HELP: dict[str, str] = {
    "help": "Show this overview of all commands.",
    "new": "Discard the current sheet and start an empty one. Save first.",
    "set": "set column-width N: set the width of the cursor's column to N.",
    "save": "save PATH: save the sheet. .csv/.tsv/.txt or .xlsx picks the format.",
    "find": "find TEXT: jump to the next text cell containing TEXT, wrapping around.",
    "sort": "sort COL: sort the rows below the fixed rows by column COL.",
    "fit": "fit COL: make column COL just wide enough for its contents.",
    "fix": "fix N rows (or fix 1 row): pin the first N rows; sorting leaves them alone.",
    "resize": "resize W H: grow the sheet to W columns and H rows.",
}


def help_text() -> str:
    return "\n".join(f"{name:<8}{text}" for name, text in COMMAND_HELP.items())


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _int_arg(text: str, what: str) -> int:
    if not text.isdigit():
        raise CommandError(f"{what} must be a non-negative integer, got {text!r}")
    return int(text)


def _column_arg(text: str) -> int:
    try:
        return column_name_to_index(text.upper())
    except ValueError:
        raise CommandError(f"Not a column: {text!r}") from None


def parse_command(text: str) -> Command | None:
    """Parse one command line.  Returns None for a blank line.

    Raises CommandError for anything else that is not a known command.
    """
    parts = text.split()
    if not parts:
        return None
    name, args = parts[0], parts[1:]

    if name == "help" and not args:
        return Help()
    if name == "new" and not args:
        return New()
    if name == "set" and len(args) == 2:
        key, value = args
        if key != "column-width":
            raise CommandError(f"Unknown setting {key!r}")
        return SetColumnWidth(_int_arg(value, "column-width"))
    if name == "save" and args:
        # Paths may contain spaces.
        return Save(Path(text.strip()[len("save"):].strip()))
    if name == "find" and args:
        return Find(text.strip()[len("find"):].strip())
    if name == "sort" and len(args) == 1:
        return Sort(_column_arg(args[0]))
    if name == "fit" and len(args) == 1:
        return Fit(_column_arg(args[0]))
    if name == "fix" and len(args) == 2:
        count, unit = args
        if unit == "rows" or (unit == "row" and count == "1"):
            return Fix(_int_arg(count, "row count"))
    if name == "resize" and len(args) == 2:
        return Resize(_int_arg(args[0], "width"), _int_arg(args[1], "height"))
    raise CommandError(f"Unknown command: {text.strip()!r}")


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


@dataclass
class Session:
    """The open sheet plus the editor state commands act on."""

    sheet: Sheet = field(default_factory=lambda: Sheet.new(*NEW_SHEET_SIZE))
    cursor: Coord = (0, 0)
    path: Path | None = None

    def run(self, text: str) -> str:
        """Parse and execute one command line, returning a status message."""
        command = parse_command(text)
        if command is None:
            return ""
        return self.execute(command)

    def execute(self, command: Command) -> str:
        logger.debug("Executing command: %s", command.display())
        sheet = self.sheet
        if isinstance(command, Help):
            return help_text()
        if isinstance(command, New):
            self.sheet = Sheet.new(*NEW_SHEET_SIZE, options=sheet.options)
            self.cursor = (0, 0)
            self.path = None
            return "New sheet"
        if isinstance(command, SetColumnWidth):
            sheet.set_column_width(self.cursor[1], command.width)
            return f"Column {index_to_column_name(self.cursor[1])} width set to {command.width}"
        if isinstance(command, Save):
            save_sheet(sheet, command.path)
            self.path = command.path
            return f"Saved to {os.fspath(command.path)}"
        if isinstance(command, Find):
            found = sheet.find(command.text, self.cursor) if sheet.n_rows and sheet.n_cols else None
            if found is None:
                return f"Not found: {command.text}"
            self.cursor = found
            return f"Found at {index_to_column_name(found[1])}{found[0] + 1}"
        if isinstance(command, Sort):
            sheet.sort_column(command.column)
            return f"Sorted by column {index_to_column_name(command.column)}"
        if isinstance(command, Fit):
            width = sheet.fit_column_width(command.column)
            return f"Column {index_to_column_name(command.column)} width set to {width}"
        if isinstance(command, Fix):
            sheet.fix_rows(command.rows)
            return command.display().capitalize()
        if isinstance(command, Resize):
            sheet.resize(command.columns, command.rows)
            return f"Resized to {command.columns}x{command.rows}"
        raise CommandError(f"Cannot execute {command!r}")
