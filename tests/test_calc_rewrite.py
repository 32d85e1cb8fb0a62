"""Tests for reference rewriting on structural edits and fills."""

from __future__ import annotations

import pytest

from tabelle.calc import _rewrite
from tabelle.calc._ast import to_source
from tabelle.calc._parser import parse


def _src(node) -> str:  # type: ignore[no-untyped-def]
    return to_source(node)


def _p(text: str):  # type: ignore[no-untyped-def]
    return parse(text, 10, 5)


class TestInsertRow:
    def test_references_below_move_down(self) -> None:
        assert _src(_rewrite.insert_row(_p("A1+A3"), 1)) == "A1+A4"

    def test_range_spanning_insertion_grows(self) -> None:
        assert _src(_rewrite.insert_row(_p("SUM(A1:A3)"), 1)) == "SUM(A1:A4)"

    def test_insert_above_range_moves_it(self) -> None:
        assert _src(_rewrite.insert_row(_p("SUM(A1:A3)"), 0)) == "SUM(A2:A4)"

    def test_whole_columns_unchanged(self) -> None:
        node = _p("SUM(B)")
        assert _rewrite.insert_row(node, 0) is node

    def test_lower_case_is_kept(self) -> None:
        assert _src(_rewrite.insert_row(_p("a1+a2"), 0)) == "a2+a3"


class TestDeleteRow:
    def test_deleted_cell_becomes_ref_error(self) -> None:
        assert _src(_rewrite.delete_row(_p("A1+A3"), 0)) == "#REF!+A2"

    def test_range_losing_a_row_shrinks(self) -> None:
        assert _src(_rewrite.delete_row(_p("SUM(A1:A3)"), 1)) == "SUM(A1:A2)"
        assert _src(_rewrite.delete_row(_p("SUM(A1:A3)"), 0)) == "SUM(A1:A2)"
        assert _src(_rewrite.delete_row(_p("SUM(A1:A3)"), 2)) == "SUM(A1:A2)"

    def test_range_losing_all_rows_becomes_ref_error(self) -> None:
        assert _src(_rewrite.delete_row(_p("SUM(A2:B2)"), 1)) == "SUM(#REF!)"

    def test_unrelated_formula_is_returned_unchanged(self) -> None:
        node = _p("A1*2")
        assert _rewrite.delete_row(node, 5) is node


class TestColumns:
    def test_insert_column(self) -> None:
        assert _src(_rewrite.insert_column(_p("A1+C1"), 1)) == "A1+D1"

    def test_delete_column(self) -> None:
        assert _src(_rewrite.delete_column(_p("A1+C1"), 1)) == "A1+B1"
        assert _src(_rewrite.delete_column(_p("B1"), 1)) == "#REF!"

    def test_range_columns(self) -> None:
        assert _src(_rewrite.delete_column(_p("SUM(A1:C2)"), 1)) == "SUM(A1:B2)"
        assert _src(_rewrite.insert_column(_p("SUM(A1:C2)"), 1)) == "SUM(A1:D2)"

    def test_whole_column_spans(self) -> None:
        assert _src(_rewrite.delete_column(_p("SUM(B:D)"), 2)) == "SUM(B:C)"
        assert _src(_rewrite.delete_column(_p("SUM(C)"), 2)) == "SUM(#REF!)"
        assert _src(_rewrite.insert_column(_p("SUM(C)"), 0)) == "SUM(D)"


class TestTranslate:
    def test_relative_move(self) -> None:
        assert _src(_rewrite.translate(_p("A1+B2"), 1, 0, 10, 5)) == "A2+B3"
        assert _src(_rewrite.translate(_p("SUM(A1:A3)"), 0, 2, 10, 5)) == "SUM(C1:C3)"

    def test_off_the_sheet_becomes_ref_error(self) -> None:
        assert _src(_rewrite.translate(_p("A10"), 1, 0, 10, 5)) == "#REF!"
        assert _src(_rewrite.translate(_p("B1"), 0, -2, 10, 5)) == "#REF!"

    def test_whole_columns_move_sideways_only(self) -> None:
        assert _src(_rewrite.translate(_p("SUM(A:B)"), 3, 1, 10, 5)) == "SUM(B:C)"

    def test_zero_offset(self) -> None:
        node = _p("A1")
        assert _rewrite.translate(node, 0, 0, 10, 5) is node

    def test_literals_are_untouched(self) -> None:
        assert _src(_rewrite.translate(_p('A1*2+"x"'), 1, 1, 10, 5)) == 'B2*2+"x"'


class TestHasRefError:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("A1+1", False), ("#REF!", True), ("SUM(A1,#REF!)", True), ("-#REF!", True)],
    )
    def test_detection(self, text: str, expected: bool) -> None:
        assert _rewrite.has_ref_error(_p(text)) is expected

    def test_rewritten_text_parses_back(self) -> None:
        rewritten = _src(_rewrite.delete_row(_p("A1+A3"), 0))
        assert _rewrite.has_ref_error(_p(rewritten))
