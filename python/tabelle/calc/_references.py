"""Reference resolution: A1-style text to 0-based ``(row, col)`` coordinates.

Columns are addressed by spreadsheet letters (``A`` .. ``Z``, ``AA`` ..) and
rows by 1-based numbers, so ``A1`` is coordinate ``(0, 0)``.  Letters may be
written upper-case or lower-case, but one reference never mixes the two.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from tabelle._errors import ParseError, ParseFailure

Coord = tuple[int, int]

_CELL_NAME_RE = re.compile(r"^([A-Za-z]+)(\d+)?$")

# Letter case of a reference token.
UPPER = "upper"
LOWER = "lower"


# ---------------------------------------------------------------------------
# Column letters
# ---------------------------------------------------------------------------


def column_name_to_index(name: str) -> int:
    """``A`` -> 0, ``Z`` -> 25, ``AA`` -> 26.  Case-insensitive."""
    if not name or not name.isascii() or not name.isalpha():
        raise ValueError(f"Invalid column name: {name!r}")
    n = 0
    for ch in name.upper():
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def index_to_column_name(index: int, lowercase: bool = False) -> str:
    """0 -> ``A``, 25 -> ``Z``, 26 -> ``AA``."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0: {index}")
    result = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        result = chr(rem + ord("A")) + result
    return result.lower() if lowercase else result


def letter_case(letters: str) -> str | None:
    """Return ``UPPER`` or ``LOWER`` for uniform letters, None if mixed."""
    if letters.isupper():
        return UPPER
    if letters.islower():
        return LOWER
    return None


def cell_name(row: int, col: int, lowercase: bool = False) -> str:
    """``(0, 0)`` -> ``A1``."""
    return f"{index_to_column_name(col, lowercase)}{row + 1}"


def parse_cell_name(name: str) -> Coord:
    """``A1`` -> ``(0, 0)`` without any bounds check.  Raises ValueError."""
    m = _CELL_NAME_RE.match(name.strip())
    if not m or m.group(2) is None:
        raise ValueError(f"Invalid cell reference: {name!r}")
    row = int(m.group(2)) - 1
    if row < 0:
        raise ValueError(f"Row must be >= 1: {name!r}")
    return row, column_name_to_index(m.group(1))


# ---------------------------------------------------------------------------
# Resolution against sheet bounds (used by the parser)
# ---------------------------------------------------------------------------


def split_reference(token: str, position: int = 0) -> tuple[str, str | None]:
    """Split ``AB12`` into ``("AB", "12")`` and ``B`` into ``("B", None)``."""
    m = _CELL_NAME_RE.match(token)
    if not m:
        raise ParseError(
            ParseFailure.INVALID_REFERENCE, f"Not a cell reference: {token!r}", position,
        )
    letters = m.group(1)
    if letter_case(letters) is None:
        raise ParseError(
            ParseFailure.MIXED_CASE, f"Reference mixes letter case: {token!r}", position,
        )
    return letters, m.group(2)


def resolve_column(letters: str, n_cols: int, position: int = 0) -> int:
    col = column_name_to_index(letters)
    if col >= n_cols:
        raise ParseError(
            ParseFailure.INVALID_REFERENCE,
            f"Column {letters!r} is outside the sheet ({n_cols} columns)",
            position,
        )
    return col


def resolve_row(digits: str, n_rows: int, position: int = 0) -> int:
    row = int(digits) - 1
    if row < 0 or row >= n_rows:
        raise ParseError(
            ParseFailure.INVALID_REFERENCE,
            f"Row {digits} is outside the sheet ({n_rows} rows)",
            position,
        )
    return row


def resolve_cell(token: str, n_rows: int, n_cols: int, position: int = 0) -> Coord:
    """Resolve a single-cell token like ``B3`` to in-bounds coordinates."""
    letters, digits = split_reference(token, position)
    if digits is None:
        raise ParseError(
            ParseFailure.INVALID_REFERENCE, f"Missing row number in {token!r}", position,
        )
    return resolve_row(digits, n_rows, position), resolve_column(letters, n_cols, position)


# ---------------------------------------------------------------------------
# Range expansion
# ---------------------------------------------------------------------------


def normalize_range(r1: int, c1: int, r2: int, c2: int) -> tuple[int, int, int, int]:
    """Order two corners as (top, left, bottom, right)."""
    return min(r1, r2), min(c1, c2), max(r1, r2), max(c1, c2)


def iter_range(top: int, left: int, bottom: int, right: int) -> Iterator[Coord]:
    """Yield the coordinates of a rectangle in row-major order."""
    for r in range(top, bottom + 1):
        for c in range(left, right + 1):
            yield r, c


def expand_range(ref: str) -> list[Coord]:
    """Expand ``A1:B2`` into ``[(0, 0), (0, 1), (1, 0), (1, 1)]``.

    Reversed corners are normalised, so ``A5:A1`` equals ``A1:A5``.
    """
    parts = ref.split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid range: {ref!r}")
    r1, c1 = parse_cell_name(parts[0])
    r2, c2 = parse_cell_name(parts[1])
    return list(iter_range(*normalize_range(r1, c1, r2, c2)))
