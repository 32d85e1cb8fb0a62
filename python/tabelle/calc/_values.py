"""Cell values: a closed variant over Number, Text, Error and Empty."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from tabelle._errors import ParseFailure

# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------


class ErrorKind(Enum):
    """Error values a cell can hold.  ``tag`` is the short display form."""

    PARSE = "#PARSE"
    TYPE = "#TYPE"
    DIV_ZERO = "#DIV/0"
    REF = "#REF"
    CYCLE = "#CYCLE"

    @property
    def tag(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: float

    def __post_init__(self) -> None:
        # Normalise ints so Number(5) and Number(5.0) hash the same way.
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Error:
    """An error value.  Errors are contagious through every operator.

    ``reason`` is only set for ``ErrorKind.PARSE``.  ``message`` is diagnostic
    and does not take part in equality.
    """

    kind: ErrorKind
    reason: ParseFailure | None = None
    message: str = field(default="", compare=False)

    @property
    def tag(self) -> str:
        return self.kind.tag


@dataclass(frozen=True)
class Empty:
    pass


EMPTY = Empty()

Value = Union[Number, Text, Error, Empty]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def parse_number(text: str) -> float | None:
    """Return the float spelled by *text*, or None if it is not a plain number.

    Only decimal notation is accepted; ``inf``, ``nan`` and friends are text.
    """
    stripped = text.strip()
    if not _NUMBER_RE.match(stripped):
        return None
    return float(stripped)


def literal_value(raw: str) -> Value:
    """Interpret the raw text of a non-formula cell."""
    if raw == "" or raw.isspace():
        return EMPTY
    number = parse_number(raw)
    if number is not None:
        return Number(number)
    return Text(raw)


def is_error(value: Value) -> bool:
    return isinstance(value, Error)


def first_error(*values: Value) -> Error | None:
    """Return the first Error found in *values*, or None."""
    for v in values:
        if isinstance(v, Error):
            return v
    return None


def to_number(value: Value) -> float | Error:
    """Coerce *value* for a numeric context.

    Empty counts as 0, Text must spell a number, Errors pass through.
    """
    if isinstance(value, Number):
        return value.value
    if isinstance(value, Empty):
        return 0.0
    if isinstance(value, Text):
        number = parse_number(value.value)
        if number is None:
            return Error(ErrorKind.TYPE, message=f"{value.value!r} is not a number")
        return number
    return value


def number_result(result: float) -> Number | Error:
    """Wrap a float, mapping overflow/NaN to a type error."""
    if math.isnan(result) or math.isinf(result):
        return Error(ErrorKind.TYPE, message="numeric overflow")
    return Number(result)


def format_number(value: float, decimals: int) -> str:
    """Integral numbers print without decimals, others with *decimals* places."""
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return f"{value:.{decimals}f}"


def format_value(value: Value, decimals: int = 2) -> str:
    """Display text for a value."""
    if isinstance(value, Number):
        return format_number(value.value, decimals)
    if isinstance(value, Text):
        return value.value
    if isinstance(value, Error):
        return value.tag
    return ""


def serialize_value(value: Value) -> str:
    """Lossless text for a value, used when flattening formulas on save."""
    if isinstance(value, Number):
        if value.value.is_integer() and abs(value.value) < 1e15:
            return str(int(value.value))
        return repr(value.value)
    return format_value(value)
