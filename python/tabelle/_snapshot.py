"""Immutable views of a sheet for renderers and codecs."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from tabelle.calc._references import Coord, parse_cell_name
from tabelle.calc._values import Value


@dataclass(frozen=True)
class CellView:
    raw: str
    is_formula: bool
    value: Value
    display: str


@dataclass(frozen=True)
class ColumnView:
    name: str
    width: int


@dataclass(frozen=True)
class SheetSnapshot:
    """A point-in-time copy of a sheet.

    Snapshots never change after creation; request a new one from the sheet
    after each edit.  They satisfy :class:`tabelle.calc.CellSource`, so a
    formula tree can be evaluated against one directly.
    """

    columns: tuple[ColumnView, ...]
    rows: tuple[tuple[CellView, ...], ...]
    fixed_rows: int = 0

    @property
    def n_rows(self) -> int:
        return len(self.rows)

    @property
    def n_cols(self) -> int:
        return len(self.columns)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def column_widths(self) -> list[int]:
        return [c.width for c in self.columns]

    def cell(self, row: int, col: int) -> CellView:
        return self.rows[row][col]

    def value_at(self, row: int, col: int) -> Value:
        return self.rows[row][col].value

    def display_text(self, row: int, col: int) -> str:
        return self.rows[row][col].display

    def __getitem__(self, key: str | Coord) -> CellView:
        """``snap["B2"]`` or ``snap[1, 1]``."""
        if isinstance(key, str):
            key = parse_cell_name(key)
        row, col = key
        return self.rows[row][col]

    def iter_display_rows(self) -> Iterator[list[str]]:
        for row in self.rows:
            yield [cell.display for cell in row]
