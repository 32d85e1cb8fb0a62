"""Built-in functions and the registry the parser and evaluator share."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass

from tabelle.calc._values import (
    Empty,
    Error,
    ErrorKind,
    Number,
    Value,
    number_result,
    to_number,
)

# ---------------------------------------------------------------------------
# RangeValue: shape-aware 2D range container
# ---------------------------------------------------------------------------


@dataclass
class RangeValue:
    """A resolved reference argument that preserves its 2D shape.

    Single-cell references reach functions as a 1x1 RangeValue so aggregates
    treat ``SUM(A1)`` like ``SUM(A1:A1)``.
    """

    values: list[Value]
    n_rows: int
    n_cols: int

    def scalar(self) -> Value:
        """The value of a 1x1 range; larger ranges are a type error."""
        if self.n_rows == 1 and self.n_cols == 1 and self.values:
            return self.values[0]
        return Error(ErrorKind.TYPE, message="range used where a single value is expected")

    def __iter__(self):
        return iter(self.values)

    def __len__(self):
        return len(self.values)


Argument = Value | RangeValue


def scalar(arg: Argument) -> Value:
    if isinstance(arg, RangeValue):
        return arg.scalar()
    return arg


# ---------------------------------------------------------------------------
# Builtin implementations.  Each takes a list of evaluated arguments and
# returns a Value; errors are returned, never raised.
# ---------------------------------------------------------------------------


def _collect_numbers(args: list[Argument]) -> list[float] | Error:
    """Flatten arguments to numbers for aggregation.

    Reference arguments keep only their Number cells (Text and Empty are
    skipped).  Scalar arguments are coerced, so a non-numeric string literal is
    a type error.  The first Error met anywhere is returned.
    """
    result: list[float] = []
    for arg in args:
        if isinstance(arg, RangeValue):
            for v in arg.values:
                if isinstance(v, Error):
                    return v
                if isinstance(v, Number):
                    result.append(v.value)
            continue
        if isinstance(arg, Empty):
            continue
        num = to_number(arg)
        if isinstance(num, Error):
            return num
        result.append(num)
    return result


def _builtin_sum(args: list[Argument]) -> Value:
    nums = _collect_numbers(args)
    if isinstance(nums, Error):
        return nums
    return number_result(math.fsum(nums))


def _builtin_avg(args: list[Argument]) -> Value:
    nums = _collect_numbers(args)
    if isinstance(nums, Error):
        return nums
    if not nums:
        return Error(ErrorKind.DIV_ZERO, message="AVG of no numbers")
    return number_result(math.fsum(nums) / len(nums))


def _builtin_min(args: list[Argument]) -> Value:
    nums = _collect_numbers(args)
    if isinstance(nums, Error):
        return nums
    return Number(min(nums) if nums else 0.0)


def _builtin_max(args: list[Argument]) -> Value:
    nums = _collect_numbers(args)
    if isinstance(nums, Error):
        return nums
    return Number(max(nums) if nums else 0.0)


def _builtin_count(args: list[Argument]) -> Value:
    """Count non-Empty cells and values of any type."""
    count = 0
    for arg in args:
        values = arg.values if isinstance(arg, RangeValue) else [arg]
        for v in values:
            if isinstance(v, Error):
                return v
            if not isinstance(v, Empty):
                count += 1
    return Number(count)


def _builtin_abs(args: list[Argument]) -> Value:
    num = to_number(scalar(args[0]))
    if isinstance(num, Error):
        return num
    return Number(abs(num))


def _builtin_round(args: list[Argument]) -> Value:
    num = to_number(scalar(args[0]))
    if isinstance(num, Error):
        return num
    digits: float | Error = 0.0
    if len(args) > 1:
        digits = to_number(scalar(args[1]))
        if isinstance(digits, Error):
            return digits
    places = max(-15, min(15, int(digits)))
    # Half away from zero, not Python's banker's rounding.
    if places >= 0:
        factor = 10.0 ** places
        rounded = math.floor(abs(num) * factor + 0.5) / factor
    else:
        step = 10.0 ** -places
        rounded = math.floor(abs(num) / step + 0.5) * step
    return number_result(math.copysign(rounded, num))


def _builtin_if(args: list[Argument]) -> Value:
    condition = to_number(scalar(args[0]))
    if isinstance(condition, Error):
        return condition
    if condition != 0:
        return scalar(args[1])
    if len(args) > 2:
        return scalar(args[2])
    return Number(0)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

Builtin = Callable[[list[Argument]], Value]

# name -> (implementation, min args, max args or None for unbounded)
_BUILTINS: dict[str, tuple[Builtin, int, int | None]] = {
    "SUM": (_builtin_sum, 1, None),
    "AVG": (_builtin_avg, 1, None),
    "AVERAGE": (_builtin_avg, 1, None),
    "MIN": (_builtin_min, 1, None),
    "MAX": (_builtin_max, 1, None),
    "COUNT": (_builtin_count, 1, None),
    "ABS": (_builtin_abs, 1, 1),
    "ROUND": (_builtin_round, 1, 2),
    "IF": (_builtin_if, 2, 3),
}


class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with the builtins and can be extended with custom functions.
    Lookups are case-insensitive.
    """

    def __init__(self) -> None:
        self._functions: dict[str, tuple[Builtin, int, int | None]] = dict(_BUILTINS)

    def register(
        self,
        name: str,
        func: Builtin,
        min_args: int = 0,
        max_args: int | None = None,
    ) -> None:
        self._functions[name.upper()] = (func, min_args, max_args)

    def get(self, name: str) -> Builtin | None:
        entry = self._functions.get(name.upper())
        return entry[0] if entry is not None else None

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    def arity(self, name: str) -> tuple[int, int | None]:
        _, min_args, max_args = self._functions[name.upper()]
        return min_args, max_args

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())


DEFAULT_REGISTRY = FunctionRegistry()
