"""Formula syntax tree.

References are stored as resolved 0-based coordinates, never as text.  Each
reference node remembers whether it was written in lower case so that a formula
rewritten after a structural edit keeps the author's addressing style.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Union

from tabelle.calc._references import Coord, cell_name, index_to_column_name, iter_range


@dataclass(frozen=True)
class NumberLit:
    value: float
    text: str = field(default="", compare=False)  # source spelling, kept for round trips


@dataclass(frozen=True)
class StringLit:
    value: str


@dataclass(frozen=True)
class CellRef:
    row: int
    col: int
    lowercase: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class RangeRef:
    """Rectangle from (top, left) to (bottom, right), inclusive."""

    top: int
    left: int
    bottom: int
    right: int
    lowercase: bool = field(default=False, compare=False)

    @property
    def shape(self) -> tuple[int, int]:
        return self.bottom - self.top + 1, self.right - self.left + 1


@dataclass(frozen=True)
class ColumnRef:
    """Whole columns ``B`` or ``B:D``.  Rows are taken from the sheet at evaluation."""

    first: int
    last: int
    lowercase: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class RefErrorLit:
    """A reference whose target was deleted (written ``#REF!``)."""


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: tuple[Node, ...]


Node = Union[
    NumberLit, StringLit, CellRef, RangeRef, ColumnRef, RefErrorLit,
    UnaryOp, BinaryOp, FunctionCall,
]

REFERENCE_TYPES = (CellRef, RangeRef, ColumnRef)

COMPARISON_OPS = ("=", "<", ">", "<=", ">=", "<>")
ADDITIVE_OPS = ("+", "-")
MULTIPLICATIVE_OPS = ("*", "/")


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def walk(node: Node) -> Iterator[Node]:
    """Yield *node* and all of its descendants, depth first."""
    yield node
    if isinstance(node, UnaryOp):
        yield from walk(node.operand)
    elif isinstance(node, BinaryOp):
        yield from walk(node.left)
        yield from walk(node.right)
    elif isinstance(node, FunctionCall):
        for arg in node.args:
            yield from walk(arg)


def referenced_cells(node: Node, n_rows: int, origin: Coord | None = None) -> set[Coord]:
    """Every coordinate *node* reads, with ranges and columns expanded.

    Whole-column references skip *origin*, the cell that owns the formula.
    """
    cells: set[Coord] = set()
    for n in walk(node):
        if isinstance(n, CellRef):
            cells.add((n.row, n.col))
        elif isinstance(n, RangeRef):
            cells.update(iter_range(n.top, n.left, n.bottom, n.right))
        elif isinstance(n, ColumnRef):
            # Only the column expansion skips the owner; an explicit self-reference still counts.
            cells.update(c for c in iter_range(0, n.first, n_rows - 1, n.last) if c != origin)
    return cells


# ---------------------------------------------------------------------------
# Formatting back to source text
# ---------------------------------------------------------------------------

_PRECEDENCE = {op: 1 for op in COMPARISON_OPS}
_PRECEDENCE.update({op: 2 for op in ADDITIVE_OPS})
_PRECEDENCE.update({op: 3 for op in MULTIPLICATIVE_OPS})
_UNARY_PRECEDENCE = 4


def _precedence(node: Node) -> int:
    if isinstance(node, BinaryOp):
        return _PRECEDENCE[node.op]
    if isinstance(node, UnaryOp):
        return _UNARY_PRECEDENCE
    return 5


def _format_number(node: NumberLit) -> str:
    if node.text:
        return node.text
    if node.value.is_integer():
        return str(int(node.value))
    return repr(node.value)


def to_source(node: Node) -> str:
    """Render *node* as formula text (without the leading marker).

    Parentheses are emitted only where precedence or associativity needs them.
    """
    if isinstance(node, NumberLit):
        return _format_number(node)
    if isinstance(node, StringLit):
        return '"' + node.value.replace('"', '""') + '"'
    if isinstance(node, CellRef):
        return cell_name(node.row, node.col, node.lowercase)
    if isinstance(node, RangeRef):
        start = cell_name(node.top, node.left, node.lowercase)
        end = cell_name(node.bottom, node.right, node.lowercase)
        return f"{start}:{end}"
    if isinstance(node, ColumnRef):
        first = index_to_column_name(node.first, node.lowercase)
        if node.first == node.last:
            return first
        return f"{first}:{index_to_column_name(node.last, node.lowercase)}"
    if isinstance(node, RefErrorLit):
        return "#REF!"
    if isinstance(node, UnaryOp):
        operand = to_source(node.operand)
        if _precedence(node.operand) < _UNARY_PRECEDENCE:
            operand = f"({operand})"
        return f"{node.op}{operand}"
    if isinstance(node, BinaryOp):
        prec = _PRECEDENCE[node.op]
        left = to_source(node.left)
        right = to_source(node.right)
        if _precedence(node.left) < prec:
            left = f"({left})"
        # Operators are left-associative: equal precedence on the right needs parens.
        if _precedence(node.right) <= prec:
            right = f"({right})"
        return f"{left}{node.op}{right}"
    if isinstance(node, FunctionCall):
        return f"{node.name}({','.join(to_source(a) for a in node.args)})"
    raise TypeError(f"Unknown node type: {type(node).__name__}")
