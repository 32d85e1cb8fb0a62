"""Exception hierarchy for tabelle.

Formula problems are never raised to callers: they become ``Error`` values
stored in the offending cell.  Exceptions are reserved for misuse of the API
(editing a cell that does not exist) and for file I/O.

Hierarchy::

    TabelleError
    ├── EditError
    │   ├── OutOfBoundsError
    │   └── DuplicateColumnError
    ├── ParseError            (raised by the parser, caught by the Sheet)
    ├── CommandError
    └── SheetIOError
        ├── SheetLoadError
        ├── SheetSaveError
        └── UnsupportedFormatError
"""

from __future__ import annotations

from enum import Enum


class TabelleError(Exception):
    """Base class for every exception raised by tabelle."""


# ---------------------------------------------------------------------------
# Structural edits
# ---------------------------------------------------------------------------


class EditError(TabelleError):
    """An edit was rejected because it cannot apply to the sheet."""


class OutOfBoundsError(EditError, IndexError):
    """A row/column coordinate does not exist in the sheet."""

    def __init__(self, row: int | None = None, col: int | None = None, message: str = "") -> None:
        self.row = row
        self.col = col
        if not message:
            message = f"Cell ({row}, {col}) is outside the sheet"
        super().__init__(message)


class DuplicateColumnError(EditError, ValueError):
    """Column header names must be unique."""


# ---------------------------------------------------------------------------
# Formula parsing
# ---------------------------------------------------------------------------


class ParseFailure(str, Enum):
    """Why a formula could not be parsed."""

    UNEXPECTED_TOKEN = "unexpected-token"
    UNTERMINATED_STRING = "unterminated-string"
    UNKNOWN_FUNCTION = "unknown-function"
    INVALID_REFERENCE = "invalid-reference"
    MIXED_CASE = "mixed-case"


class ParseError(TabelleError):
    """A formula body failed to lex or parse.

    ``position`` is the character offset into the formula body (without the
    leading marker) where the problem was found.
    """

    def __init__(self, reason: ParseFailure, message: str, position: int = 0) -> None:
        super().__init__(message)
        self.reason = reason
        self.position = position

    def __repr__(self) -> str:
        return f"ParseError({self.reason.name}, {str(self)!r}, position={self.position})"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class CommandError(TabelleError, ValueError):
    """A command line could not be understood."""


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


class SheetIOError(TabelleError):
    """Loading or saving a sheet failed."""


class SheetLoadError(SheetIOError):
    """A file could not be turned into a sheet."""


class SheetSaveError(SheetIOError):
    """A sheet could not be written to disk."""


class UnsupportedFormatError(SheetIOError, ValueError):
    """The file extension does not map to a known codec."""
