"""Tree-walking evaluator for parsed formulas.

Evaluation is pure: it reads cell values through a :class:`CellSource` and
returns a fresh :data:`Value`.  Writing results back is the sheet's job.
"""

from __future__ import annotations

import logging

from tabelle.calc._ast import (
    REFERENCE_TYPES,
    BinaryOp,
    CellRef,
    ColumnRef,
    FunctionCall,
    Node,
    NumberLit,
    RangeRef,
    RefErrorLit,
    StringLit,
    UnaryOp,
)
from tabelle.calc._functions import DEFAULT_REGISTRY, Argument, FunctionRegistry, RangeValue
from tabelle.calc._protocol import CellSource
from tabelle.calc._references import Coord, iter_range
from tabelle.calc._values import (
    Empty,
    Error,
    ErrorKind,
    Number,
    Text,
    Value,
    first_error,
    number_result,
    parse_number,
    to_number,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


def _binary_op(left: Value, op: str, right: Value) -> Value:
    """Evaluate an arithmetic operation."""
    err = first_error(left, right)
    if err is not None:
        return err
    lnum = to_number(left)
    if isinstance(lnum, Error):
        return lnum
    rnum = to_number(right)
    if isinstance(rnum, Error):
        return rnum
    if op == "+":
        return number_result(lnum + rnum)
    if op == "-":
        return number_result(lnum - rnum)
    if op == "*":
        return number_result(lnum * rnum)
    if op == "/":
        if rnum == 0:
            return Error(ErrorKind.DIV_ZERO)
        return number_result(lnum / rnum)
    raise ValueError(f"Unknown operator {op!r}")


def _comparable_number(value: Value) -> float | None:
    if isinstance(value, Number):
        return value.value
    if isinstance(value, Empty):
        return 0.0
    if isinstance(value, Text):
        return parse_number(value.value)
    return None


def _compare(left: Value, right: Value, op: str) -> Value:
    """Evaluate a comparison, yielding Number 1 for true and 0 for false.

    Numbers (and numeric text) compare numerically; anything else compares as
    case-insensitive text.
    """
    err = first_error(left, right)
    if err is not None:
        return err
    ln = _comparable_number(left)
    rn = _comparable_number(right)
    if ln is not None and rn is not None:
        lv: float | str = ln
        rv: float | str = rn
    else:
        lv = left.value.lower() if isinstance(left, Text) else ""
        rv = right.value.lower() if isinstance(right, Text) else ""
        if isinstance(left, Number):
            lv = str(left.value)
        if isinstance(right, Number):
            rv = str(right.value)
    if op == "=":
        result = lv == rv
    elif op == "<>":
        result = lv != rv
    elif op == "<":
        result = lv < rv  # type: ignore[operator]
    elif op == ">":
        result = lv > rv  # type: ignore[operator]
    elif op == "<=":
        result = lv <= rv  # type: ignore[operator]
    elif op == ">=":
        result = lv >= rv  # type: ignore[operator]
    else:
        raise ValueError(f"Unknown comparison {op!r}")
    return Number(1 if result else 0)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class Evaluator:
    """Evaluates formula trees against a :class:`CellSource`.

    Usage::

        evaluator = Evaluator()
        value = evaluator.evaluate(tree, sheet.snapshot(), origin=(0, 1))

    *origin* is the coordinate of the cell that owns the formula; whole-column
    references leave it out so ``=SUM(A)`` can sit at the bottom of column A.
    """

    def __init__(self, functions: FunctionRegistry | None = None) -> None:
        self._functions = functions if functions is not None else DEFAULT_REGISTRY

    def evaluate(self, node: Node, source: CellSource, origin: Coord | None = None) -> Value:
        if isinstance(node, NumberLit):
            return Number(node.value)
        if isinstance(node, StringLit):
            return Text(node.value)
        if isinstance(node, RefErrorLit):
            return Error(ErrorKind.REF, message="reference to a deleted cell")
        if isinstance(node, CellRef):
            return self._cell_value(node.row, node.col, source)
        if isinstance(node, (RangeRef, ColumnRef)):
            rng = self._range_value(node, source, origin)
            if isinstance(rng, Error):
                return rng
            return rng.scalar()
        if isinstance(node, UnaryOp):
            operand = self.evaluate(node.operand, source, origin)
            num = to_number(operand)
            if isinstance(num, Error):
                return num
            return Number(-num)
        if isinstance(node, BinaryOp):
            left = self.evaluate(node.left, source, origin)
            right = self.evaluate(node.right, source, origin)
            if node.op in ("+", "-", "*", "/"):
                return _binary_op(left, node.op, right)
            return _compare(left, right, node.op)
        if isinstance(node, FunctionCall):
            return self._call(node, source, origin)
        raise TypeError(f"Unknown node type: {type(node).__name__}")

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    @staticmethod
    def _cell_value(row: int, col: int, source: CellSource) -> Value:
        if not (0 <= row < source.n_rows and 0 <= col < source.n_cols):
            return Error(ErrorKind.REF, message="reference outside the sheet")
        return source.value_at(row, col)

    @staticmethod
    def _range_value(
        node: CellRef | RangeRef | ColumnRef,
        source: CellSource,
        origin: Coord | None,
    ) -> RangeValue | Error:
        if isinstance(node, CellRef):
            return RangeValue([Evaluator._cell_value(node.row, node.col, source)], 1, 1)
        if isinstance(node, RangeRef):
            if node.bottom >= source.n_rows or node.right >= source.n_cols:
                return Error(ErrorKind.REF, message="range outside the sheet")
            n_rows, n_cols = node.shape
            values = [
                source.value_at(r, c)
                for r, c in iter_range(node.top, node.left, node.bottom, node.right)
            ]
            return RangeValue(values, n_rows, n_cols)
        if node.last >= source.n_cols:
            return Error(ErrorKind.REF, message="column outside the sheet")
        values = [
            source.value_at(r, c)
            for r, c in iter_range(0, node.first, source.n_rows - 1, node.last)
            if (r, c) != origin
        ]
        return RangeValue(values, source.n_rows, node.last - node.first + 1)

    # ------------------------------------------------------------------
    # Function dispatch
    # ------------------------------------------------------------------

    def _call(self, node: FunctionCall, source: CellSource, origin: Coord | None) -> Value:
        func = self._functions.get(node.name)
        if func is None:
            # Registry changed after parsing.
            return Error(ErrorKind.PARSE, message=f"unknown function {node.name}")
        args: list[Argument] = []
        for arg in node.args:
            if isinstance(arg, REFERENCE_TYPES):
                args.append(self._range_value(arg, source, origin))
            else:
                args.append(self.evaluate(arg, source, origin))
        try:
            return func(args)
        except (ArithmeticError, TypeError, ValueError) as e:
            logger.debug("Error evaluating %s: %s", node.name.upper(), e)
            return Error(ErrorKind.TYPE, message=str(e))


_DEFAULT_EVALUATOR = Evaluator()


def evaluate(node: Node, source: CellSource, origin: Coord | None = None) -> Value:
    """Evaluate *node* with the builtin function set."""
    return _DEFAULT_EVALUATOR.evaluate(node, source, origin)
