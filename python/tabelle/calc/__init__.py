"""tabelle.calc - Formula engine: parsing, evaluation and dependency tracking."""

from tabelle.calc._ast import referenced_cells, to_source
from tabelle.calc._evaluator import Evaluator, evaluate
from tabelle.calc._functions import DEFAULT_REGISTRY, FunctionRegistry, RangeValue
from tabelle.calc._graph import DependencyGraph
from tabelle.calc._parser import FormulaParser, parse, tokenize
from tabelle.calc._protocol import CellDelta, CellSource, RecalcResult
from tabelle.calc._references import (
    cell_name,
    column_name_to_index,
    expand_range,
    index_to_column_name,
    parse_cell_name,
)
from tabelle.calc._values import EMPTY, Empty, Error, ErrorKind, Number, Text, Value

__all__ = [
    "CellDelta",
    "CellSource",
    "DEFAULT_REGISTRY",
    "DependencyGraph",
    "EMPTY",
    "Empty",
    "Error",
    "ErrorKind",
    "Evaluator",
    "FormulaParser",
    "FunctionRegistry",
    "Number",
    "RangeValue",
    "RecalcResult",
    "Text",
    "Value",
    "cell_name",
    "column_name_to_index",
    "evaluate",
    "expand_range",
    "index_to_column_name",
    "parse",
    "parse_cell_name",
    "referenced_cells",
    "to_source",
    "tokenize",
]
