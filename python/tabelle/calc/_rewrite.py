"""Rewriting formula trees when rows or columns move.

Every function here returns a new tree; the input is never modified.  Nodes
that need no change are returned as-is, so callers can detect a rewrite with
``new is not old``.
"""

from __future__ import annotations

from collections.abc import Callable

from tabelle.calc._ast import (
    BinaryOp,
    CellRef,
    ColumnRef,
    FunctionCall,
    Node,
    RangeRef,
    RefErrorLit,
    UnaryOp,
    walk,
)

ROW = "row"
COL = "col"

RefTransform = Callable[[Node], Node]


def map_references(node: Node, transform: RefTransform) -> Node:
    """Apply *transform* to every reference node in *node*."""
    if isinstance(node, (CellRef, RangeRef, ColumnRef)):
        return transform(node)
    if isinstance(node, UnaryOp):
        operand = map_references(node.operand, transform)
        return node if operand is node.operand else UnaryOp(node.op, operand)
    if isinstance(node, BinaryOp):
        left = map_references(node.left, transform)
        right = map_references(node.right, transform)
        if left is node.left and right is node.right:
            return node
        return BinaryOp(node.op, left, right)
    if isinstance(node, FunctionCall):
        args = tuple(map_references(a, transform) for a in node.args)
        if all(new is old for new, old in zip(args, node.args)):
            return node
        return FunctionCall(node.name, args)
    return node


# ---------------------------------------------------------------------------
# Index arithmetic for one axis
# ---------------------------------------------------------------------------


def _insert_index(index: int, at: int) -> int:
    return index + 1 if index >= at else index


def _insert_span(lo: int, hi: int, at: int) -> tuple[int, int]:
    # Inserting inside a span grows it; inserting at its first index pushes it.
    return _insert_index(lo, at), _insert_index(hi, at)


def _delete_index(index: int, at: int) -> int | None:
    if index == at:
        return None
    return index - 1 if index > at else index


def _delete_span(lo: int, hi: int, at: int) -> tuple[int, int] | None:
    if lo == hi == at:
        return None
    new_lo = lo - 1 if lo > at else lo
    new_hi = hi - 1 if hi >= at else hi
    return new_lo, new_hi


# ---------------------------------------------------------------------------
# Structural edits
# ---------------------------------------------------------------------------


def _structural(axis: str, at: int, inserting: bool) -> RefTransform:
    def transform(ref: Node) -> Node:
        if isinstance(ref, CellRef):
            index = ref.row if axis == ROW else ref.col
            if inserting:
                moved: int | None = _insert_index(index, at)
            else:
                moved = _delete_index(index, at)
            if moved is None:
                return RefErrorLit()
            if moved == index:
                return ref
            if axis == ROW:
                return CellRef(moved, ref.col, ref.lowercase)
            return CellRef(ref.row, moved, ref.lowercase)

        if isinstance(ref, RangeRef):
            lo, hi = (ref.top, ref.bottom) if axis == ROW else (ref.left, ref.right)
            span = _insert_span(lo, hi, at) if inserting else _delete_span(lo, hi, at)
            if span is None:
                return RefErrorLit()
            if span == (lo, hi):
                return ref
            if axis == ROW:
                return RangeRef(span[0], ref.left, span[1], ref.right, ref.lowercase)
            return RangeRef(ref.top, span[0], ref.bottom, span[1], ref.lowercase)

        if isinstance(ref, ColumnRef):
            # Whole columns follow the sheet's rows automatically.
            if axis == ROW:
                return ref
            lo, hi = ref.first, ref.last
            span = _insert_span(lo, hi, at) if inserting else _delete_span(lo, hi, at)
            if span is None:
                return RefErrorLit()
            if span == (lo, hi):
                return ref
            return ColumnRef(span[0], span[1], ref.lowercase)
        return ref

    return transform


def insert_row(node: Node, at: int) -> Node:
    """References at or below row *at* move down by one."""
    return map_references(node, _structural(ROW, at, inserting=True))


def delete_row(node: Node, at: int) -> Node:
    """References below row *at* move up; references to row *at* become ``#REF!``."""
    return map_references(node, _structural(ROW, at, inserting=False))


def insert_column(node: Node, at: int) -> Node:
    return map_references(node, _structural(COL, at, inserting=True))


def delete_column(node: Node, at: int) -> Node:
    return map_references(node, _structural(COL, at, inserting=False))


# ---------------------------------------------------------------------------
# Relative move (fill)
# ---------------------------------------------------------------------------


def translate(node: Node, drow: int, dcol: int, n_rows: int, n_cols: int) -> Node:
    """Move every reference by ``(drow, dcol)``, as when copying a formula.

    References pushed off the sheet become ``#REF!``.  Whole columns only
    move sideways.
    """

    def in_rows(r: int) -> bool:
        return 0 <= r < n_rows

    def in_cols(c: int) -> bool:
        return 0 <= c < n_cols

    def transform(ref: Node) -> Node:
        if isinstance(ref, CellRef):
            row, col = ref.row + drow, ref.col + dcol
            if not (in_rows(row) and in_cols(col)):
                return RefErrorLit()
            return CellRef(row, col, ref.lowercase)
        if isinstance(ref, RangeRef):
            top, bottom = ref.top + drow, ref.bottom + drow
            left, right = ref.left + dcol, ref.right + dcol
            if not (in_rows(top) and in_rows(bottom) and in_cols(left) and in_cols(right)):
                return RefErrorLit()
            return RangeRef(top, left, bottom, right, ref.lowercase)
        if isinstance(ref, ColumnRef):
            first, last = ref.first + dcol, ref.last + dcol
            if not (in_cols(first) and in_cols(last)):
                return RefErrorLit()
            return ColumnRef(first, last, ref.lowercase)
        return ref

    if drow == 0 and dcol == 0:
        return node
    return map_references(node, transform)


def has_ref_error(node: Node) -> bool:
    """True if *node* contains a ``#REF!`` placeholder."""
    return any(isinstance(n, RefErrorLit) for n in walk(node))
