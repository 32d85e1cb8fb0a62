"""The sheet model: sole owner of columns, rows, cells and the dependency graph."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence

from tabelle._cell import Cell, Column
from tabelle._errors import DuplicateColumnError, EditError, OutOfBoundsError, ParseError
from tabelle._options import DEFAULT_OPTIONS, SheetOptions
from tabelle._snapshot import CellView, ColumnView, SheetSnapshot
from tabelle.calc import _rewrite
from tabelle.calc._ast import Node, referenced_cells, to_source
from tabelle.calc._evaluator import Evaluator
from tabelle.calc._functions import DEFAULT_REGISTRY, FunctionRegistry
from tabelle.calc._graph import DependencyGraph
from tabelle.calc._parser import FormulaParser
from tabelle.calc._protocol import CellDelta, RecalcResult
from tabelle.calc._references import Coord, cell_name, index_to_column_name
from tabelle.calc._values import (
    Empty,
    Error,
    ErrorKind,
    Number,
    Text,
    Value,
    format_value,
    literal_value,
)

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"^\s*[+-]?\d+\s*$")
_ERROR_ORDER = {kind: i for i, kind in enumerate(ErrorKind)}


def _sort_key(value: Value) -> tuple[int, float, str]:
    """Numbers, then Text (case-insensitive), then Errors.  Empty is handled by the caller."""
    if isinstance(value, Number):
        return 0, value.value, ""
    if isinstance(value, Text):
        return 1, 0.0, value.value.casefold()
    if isinstance(value, Error):
        return 2, float(_ERROR_ORDER[value.kind]), ""
    raise TypeError(f"Unsortable value: {value!r}")


class Sheet:
    """A rectangular grid of cells with formulas and incremental recalculation.

    Usage::

        sheet = Sheet(n_rows=3, n_cols=2)
        sheet.set_cell_text(0, 0, "2")
        sheet.set_cell_text(1, 0, "3")
        sheet.set_cell_text(2, 0, "=A1+A2")
        sheet.get_value(2, 0)        # Number(value=5.0)

    Coordinates are 0-based ``(row, col)``; formulas address cells as ``A1``.
    The sheet also satisfies :class:`tabelle.calc.CellSource`, which is how the
    evaluator reads live values during recalculation.
    """

    __slots__ = ("_columns", "_rows", "_graph", "_options", "_functions", "_evaluator", "_fixed_rows")

    def __init__(
        self,
        n_rows: int = 0,
        n_cols: int = 0,
        *,
        column_names: Sequence[str | None] | None = None,
        options: SheetOptions | None = None,
        functions: FunctionRegistry | None = None,
    ) -> None:
        if n_rows < 0 or n_cols < 0:
            raise ValueError("Sheet dimensions must be >= 0")
        self._options = options if options is not None else DEFAULT_OPTIONS
        self._functions = functions if functions is not None else DEFAULT_REGISTRY
        self._evaluator = Evaluator(self._functions)
        self._graph = DependencyGraph()
        self._fixed_rows = 0
        width = self._options.default_column_width
        self._columns = [Column(width=width) for _ in range(n_cols)]
        self._rows = [[Cell() for _ in range(n_cols)] for _ in range(n_rows)]
        if column_names is not None:
            if len(column_names) > n_cols:
                raise ValueError(f"{len(column_names)} column names for {n_cols} columns")
            for col, name in enumerate(column_names):
                if name is not None:
                    self.set_column_name(col, name)

    @classmethod
    def new(cls, width: int, height: int, *, options: SheetOptions | None = None) -> Sheet:
        """An empty sheet of *width* columns and *height* rows."""
        return cls(n_rows=height, n_cols=width, options=options)

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[str]],
        *,
        column_names: Sequence[str | None] | None = None,
        options: SheetOptions | None = None,
        functions: FunctionRegistry | None = None,
    ) -> Sheet:
        """Build a sheet from raw cell texts.  Short rows are padded with empty cells."""
        n_cols = max([len(r) for r in rows] + [len(column_names or ())])
        sheet = cls(
            n_rows=len(rows),
            n_cols=n_cols,
            column_names=column_names,
            options=options,
            functions=functions,
        )
        sheet.load_cells(
            (r, c, text) for r, row in enumerate(rows) for c, text in enumerate(row)
        )
        return sheet

    # ------------------------------------------------------------------
    # Dimensions and metadata
    # ------------------------------------------------------------------

    @property
    def n_rows(self) -> int:
        return len(self._rows)

    @property
    def n_cols(self) -> int:
        return len(self._columns)

    @property
    def options(self) -> SheetOptions:
        return self._options

    @property
    def fixed_rows(self) -> int:
        return self._fixed_rows

    @property
    def column_names(self) -> list[str]:
        """Header labels; unnamed columns report their letter."""
        return [self._column_label(i) for i in range(self.n_cols)]

    @property
    def column_widths(self) -> list[int]:
        return [c.width for c in self._columns]

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def _column_label(self, col: int) -> str:
        name = self._columns[col].name
        return name if name is not None else index_to_column_name(col)

    def _check_name(self, name: str, skip: int | None = None) -> None:
        if not name or name.isspace():
            raise EditError("Column names must be non-empty")
        for i, column in enumerate(self._columns):
            if i != skip and column.name == name:
                raise DuplicateColumnError(f"Column name {name!r} is already used")

    def set_column_name(self, col: int, name: str) -> None:
        self._check_col(col)
        self._check_name(name, skip=col)
        self._columns[col].name = name

    def set_column_width(self, col: int, width: int) -> None:
        self._check_col(col)
        if width < 1:
            raise EditError(f"Column width must be >= 1, got {width}")
        self._columns[col].width = width

    def fit_column_width(self, col: int) -> int:
        """Size column *col* to its widest displayed value plus one.  Returns the width."""
        self._check_col(col)
        widest = max((len(self.display_text(r, col)) for r in range(self.n_rows)), default=0)
        self.set_column_width(col, widest + 1)
        return widest + 1

    def fix_rows(self, n: int) -> None:
        """Pin the first *n* rows so sorting leaves them in place."""
        if not 0 <= n <= self.n_rows:
            raise OutOfBoundsError(message=f"Cannot fix {n} rows of {self.n_rows}")
        self._fixed_rows = n

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------

    def _check(self, row: int, col: int) -> None:
        if not (0 <= row < self.n_rows and 0 <= col < self.n_cols):
            raise OutOfBoundsError(row, col)

    def _check_col(self, col: int) -> None:
        if not 0 <= col < self.n_cols:
            raise OutOfBoundsError(col=col, message=f"Column {col} is outside the sheet")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def value_at(self, row: int, col: int) -> Value:
        return self._rows[row][col].value

    def get_value(self, row: int, col: int) -> Value:
        """Last computed value of a cell."""
        self._check(row, col)
        return self._rows[row][col].value

    def get_text(self, row: int, col: int) -> str:
        """Raw text of a cell, as entered or loaded."""
        self._check(row, col)
        return self._rows[row][col].raw

    def get_formula(self, row: int, col: int) -> Node | None:
        self._check(row, col)
        return self._rows[row][col].ast

    def display_text(self, row: int, col: int) -> str:
        self._check(row, col)
        return format_value(self._rows[row][col].value, self._options.decimals)

    def snapshot(self) -> SheetSnapshot:
        decimals = self._options.decimals
        is_formula = self._options.is_formula
        rows = tuple(
            tuple(
                CellView(cell.raw, is_formula(cell.raw), cell.value, format_value(cell.value, decimals))
                for cell in row
            )
            for row in self._rows
        )
        columns = tuple(
            ColumnView(self._column_label(i), c.width) for i, c in enumerate(self._columns)
        )
        return SheetSnapshot(columns, rows, self._fixed_rows)

    def find(self, text: str, start: Coord = (0, 0)) -> Coord | None:
        """Next Text cell after *start* containing *text*, row-major, wrapping.

        *start* itself is checked last.
        """
        n_cols = self.n_cols
        total = self.n_rows * n_cols
        if total == 0:
            return None
        self._check(*start)
        begin = start[0] * n_cols + start[1]
        for step in range(1, total + 1):
            row, col = divmod((begin + step) % total, n_cols)
            value = self._rows[row][col].value
            if isinstance(value, Text) and text in value.value:
                return row, col
        return None

    # ------------------------------------------------------------------
    # Cell edits
    # ------------------------------------------------------------------

    def set_cell_text(self, row: int, col: int, text: str) -> RecalcResult:
        """Replace a cell's raw text and recalculate everything that depends on it."""
        self._check(row, col)
        cell = self._rows[row][col]
        previous = {(row, col): cell.value}
        cell.raw = text
        self._install(row, col)
        return self._recalculate_from({(row, col)}, previous)

    def clear_cell(self, row: int, col: int) -> RecalcResult:
        return self.set_cell_text(row, col, "")

    def fill_from(self, src: Coord, dst: Coord) -> RecalcResult:
        """Copy *src* into *dst*, moving relative references by the offset.

        Integer literals step by the combined row and column offset, so filling
        ``1`` one cell down gives ``2``.
        """
        self._check(*src)
        self._check(*dst)
        drow, dcol = dst[0] - src[0], dst[1] - src[1]
        cell = self._rows[src[0]][src[1]]
        if cell.ast is not None:
            moved = _rewrite.translate(cell.ast, drow, dcol, self.n_rows, self.n_cols)
            text = self._options.formula_marker + to_source(moved)
        elif not self._options.is_formula(cell.raw) and _INTEGER_RE.match(cell.raw):
            text = str(int(cell.raw) + drow + dcol)
        else:
            text = cell.raw
        return self.set_cell_text(dst[0], dst[1], text)

    def load_cells(self, cells: Iterable[tuple[int, int, str]]) -> RecalcResult:
        """Bulk-enter ``(row, col, raw_text)`` triples, then recalculate once.

        Cells are parsed in row-major order regardless of the input order.
        """
        triples = sorted(cells, key=lambda t: (t[0], t[1]))
        for row, col, _ in triples:
            self._check(row, col)
        for row, col, text in triples:
            self._rows[row][col].raw = text
            self._install(row, col)
        logger.debug("Loaded %d cells into %dx%d sheet", len(triples), self.n_rows, self.n_cols)
        return self.recalculate()

    def _parser(self) -> FormulaParser:
        return FormulaParser(self.n_rows, self.n_cols, self._functions)

    def _install(self, row: int, col: int) -> None:
        """Parse a cell's raw text and point its graph edges at what it reads."""
        cell = self._rows[row][col]
        cell.ast = None
        if self._options.is_formula(cell.raw):
            body = cell.raw[len(self._options.formula_marker):]
            try:
                cell.ast = self._parser().parse(body)
            except ParseError as e:
                logger.debug("Parse error in %s: %r", cell_name(row, col), e)
                cell.value = Error(ErrorKind.PARSE, e.reason, str(e))
        else:
            cell.value = literal_value(cell.raw)
        self._link(row, col)

    def _link(self, row: int, col: int) -> None:
        ast = self._rows[row][col].ast
        refs = referenced_cells(ast, self.n_rows, origin=(row, col)) if ast is not None else ()
        self._graph.set_dependencies((row, col), refs)

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    def recalculate(self) -> RecalcResult:
        """Re-evaluate every formula cell."""
        formulas = {
            (r, c)
            for r, row in enumerate(self._rows)
            for c, cell in enumerate(row)
            if cell.ast is not None
        }
        previous = {coord: self._rows[coord[0]][coord[1]].value for coord in formulas}
        order, _ = self._graph.topological_order(formulas)
        return self._evaluate(order, formulas, previous)

    def _recalculate_from(self, roots: set[Coord], previous: dict[Coord, Value]) -> RecalcResult:
        order, cyclic = self._graph.recompute_order(roots)
        cells = set(order) | cyclic
        for r, c in cells:
            previous.setdefault((r, c), self._rows[r][c].value)
        return self._evaluate(order, cells, previous, self._graph.max_depth(roots))

    def _evaluate(
        self,
        order: list[Coord],
        cells: set[Coord],
        previous: dict[Coord, Value],
        depth: int = 0,
    ) -> RecalcResult:
        for r, c in cells:
            self._rows[r][c].dirty = True

        for r, c in order:
            cell = self._rows[r][c]
            if cell.ast is not None:
                cell.value = self._evaluator.evaluate(cell.ast, self, origin=(r, c))
            cell.dirty = False

        # Anything still dirty sits on a cycle or downstream of one.
        cyclic = sorted(coord for coord in cells if self._rows[coord[0]][coord[1]].dirty)
        for r, c in cyclic:
            cell = self._rows[r][c]
            cell.value = Error(ErrorKind.CYCLE, message="circular reference")
            cell.dirty = False
        if cyclic:
            logger.warning(
                "Circular reference involving %s",
                ", ".join(cell_name(r, c) for r, c in cyclic),
            )

        recomputed = tuple(order) + tuple(cyclic)
        deltas = tuple(
            CellDelta(coord, previous[coord], self._rows[coord[0]][coord[1]].value)
            for coord in recomputed
            if previous.get(coord) != self._rows[coord[0]][coord[1]].value
        )
        logger.debug("Recalculated %d cells, %d changed", len(recomputed), len(deltas))
        return RecalcResult(recomputed, deltas, frozenset(cyclic), depth)

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def _rewrite_formulas(self, rewrite: Callable[[Node], Node]) -> None:
        """Apply *rewrite* to every formula tree and regenerate changed raw text."""
        marker = self._options.formula_marker
        for row in self._rows:
            for cell in row:
                if cell.ast is None:
                    continue
                new_ast = rewrite(cell.ast)
                if new_ast is not cell.ast:
                    cell.ast = new_ast
                    cell.raw = marker + to_source(new_ast)
                    if _rewrite.has_ref_error(new_ast):
                        logger.debug("Formula now references a deleted cell: %s", cell.raw)

    def _rebuild(self) -> RecalcResult:
        self._graph.clear()
        for r, row in enumerate(self._rows):
            for c, cell in enumerate(row):
                if cell.ast is not None:
                    self._link(r, c)
        return self.recalculate()

    def insert_row(self, at: int) -> RecalcResult:
        """Insert an empty row before row *at* (``at == n_rows`` appends)."""
        if not 0 <= at <= self.n_rows:
            raise OutOfBoundsError(row=at, message=f"Cannot insert row at {at}")
        self._rows.insert(at, [Cell() for _ in range(self.n_cols)])
        if at < self._fixed_rows:
            self._fixed_rows += 1
        self._rewrite_formulas(lambda node: _rewrite.insert_row(node, at))
        logger.debug("Inserted row at %d", at)
        return self._rebuild()

    def delete_row(self, at: int) -> RecalcResult:
        if not 0 <= at < self.n_rows:
            raise OutOfBoundsError(row=at, message=f"Cannot delete row {at}")
        del self._rows[at]
        if at < self._fixed_rows:
            self._fixed_rows -= 1
        self._rewrite_formulas(lambda node: _rewrite.delete_row(node, at))
        logger.debug("Deleted row %d", at)
        return self._rebuild()

    def insert_column(self, at: int, name: str | None = None) -> RecalcResult:
        """Insert an empty column before column *at* (``at == n_cols`` appends)."""
        if not 0 <= at <= self.n_cols:
            raise OutOfBoundsError(col=at, message=f"Cannot insert column at {at}")
        if name is not None:
            self._check_name(name)
        self._columns.insert(at, Column(name, self._options.default_column_width))
        for row in self._rows:
            row.insert(at, Cell())
        self._rewrite_formulas(lambda node: _rewrite.insert_column(node, at))
        logger.debug("Inserted column at %d", at)
        return self._rebuild()

    def delete_column(self, at: int) -> RecalcResult:
        if not 0 <= at < self.n_cols:
            raise OutOfBoundsError(col=at, message=f"Cannot delete column {at}")
        del self._columns[at]
        for row in self._rows:
            del row[at]
        self._rewrite_formulas(lambda node: _rewrite.delete_column(node, at))
        logger.debug("Deleted column %d", at)
        return self._rebuild()

    def resize(self, n_cols: int, n_rows: int) -> RecalcResult:
        """Grow the sheet to *n_cols* x *n_rows*.  Shrinking is not supported."""
        if n_cols < self.n_cols or n_rows < self.n_rows:
            raise EditError(
                f"Cannot shrink sheet from {self.n_cols}x{self.n_rows} to {n_cols}x{n_rows}"
            )
        width = self._options.default_column_width
        for _ in range(n_cols - self.n_cols):
            self._columns.append(Column(width=width))
            for row in self._rows:
                row.append(Cell())
        for _ in range(n_rows - self.n_rows):
            self._rows.append([Cell() for _ in range(n_cols)])
        # Whole-column references now cover the new rows.
        return self._rebuild()

    def sort_column(self, col: int, descending: bool = False) -> RecalcResult:
        """Reorder the rows below the fixed rows by the values in *col*.

        Numbers sort before Text, Text before Errors; empty cells always go
        last.  Formulas move with their rows without being rewritten.
        """
        self._check_col(col)
        head = self._rows[: self._fixed_rows]
        body = self._rows[self._fixed_rows:]
        filled = [row for row in body if not isinstance(row[col].value, Empty)]
        empty = [row for row in body if isinstance(row[col].value, Empty)]
        filled.sort(key=lambda row: _sort_key(row[col].value), reverse=descending)
        self._rows = head + filled + empty
        logger.debug("Sorted %d rows by column %s", len(body), index_to_column_name(col))
        return self._rebuild()

    def __repr__(self) -> str:
        return f"<Sheet {self.n_cols}x{self.n_rows}>"
