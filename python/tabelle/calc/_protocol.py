"""Read protocol for evaluation and recalculation result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from tabelle.calc._references import Coord, cell_name
from tabelle.calc._values import Value


@runtime_checkable
class CellSource(Protocol):
    """Anything the evaluator can read cell values from.

    Implemented by :class:`tabelle.SheetSnapshot` and by the sheet's internal
    live view used during recalculation.
    """

    @property
    def n_rows(self) -> int: ...

    @property
    def n_cols(self) -> int: ...

    def value_at(self, row: int, col: int) -> Value:
        """Current value of an in-bounds cell."""
        ...


@dataclass(frozen=True)
class CellDelta:
    """A single cell's value change from recalculation."""

    coord: Coord
    old_value: Value
    new_value: Value

    @property
    def name(self) -> str:
        return cell_name(*self.coord)


@dataclass(frozen=True)
class RecalcResult:
    """What one edit (or a full pass) recomputed."""

    recomputed: tuple[Coord, ...]  # in evaluation order
    deltas: tuple[CellDelta, ...]  # recomputed cells whose value changed
    cyclic: frozenset[Coord] = frozenset()  # cells set to a cycle error
    max_chain_depth: int = 0  # longest dependent chain below the edited cells

    @property
    def changed(self) -> frozenset[Coord]:
        return frozenset(d.coord for d in self.deltas)

    @property
    def propagation_ratio(self) -> float:
        if not self.recomputed:
            return 0.0
        return len(self.deltas) / len(self.recomputed)
