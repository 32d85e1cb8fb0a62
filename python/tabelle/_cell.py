"""Mutable cell and column holders owned by a Sheet."""

from __future__ import annotations

from tabelle._options import DEFAULT_COLUMN_WIDTH
from tabelle.calc._ast import Node
from tabelle.calc._values import EMPTY, Value


class Cell:
    """One cell: raw text, its parsed formula (if any) and its last value.

    ``ast`` is None for literal cells and for formulas that failed to parse;
    in the latter case ``value`` holds the parse error.
    """

    __slots__ = ("raw", "ast", "value", "dirty")

    def __init__(self, raw: str = "") -> None:
        self.raw = raw
        self.ast: Node | None = None
        self.value: Value = EMPTY
        self.dirty = False

    def __repr__(self) -> str:
        return f"<Cell raw={self.raw!r} value={self.value!r}>"


class Column:
    """Column metadata.  ``name`` is None until a header label is set."""

    __slots__ = ("name", "width")

    def __init__(self, name: str | None = None, width: int = DEFAULT_COLUMN_WIDTH) -> None:
        self.name = name
        self.width = width

    def __repr__(self) -> str:
        return f"<Column name={self.name!r} width={self.width}>"
