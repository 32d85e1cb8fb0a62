"""Tests for inserting and deleting rows and columns."""

from __future__ import annotations

import logging

import pytest

from tabelle import DuplicateColumnError, Error, ErrorKind, Number, OutOfBoundsError, Sheet


class TestRows:
    def test_insert_shifts_references(self) -> None:
        sheet = Sheet.from_rows([["1"], ["2"], ["=A1+A2"]])
        sheet.insert_row(0)
        assert sheet.n_rows == 4
        assert sheet.get_text(3, 0) == "=A2+A3"
        assert sheet.get_value(3, 0) == Number(3)

    def test_append_row(self) -> None:
        sheet = Sheet.from_rows([["1"], ["=A1"]])
        sheet.insert_row(2)
        assert sheet.n_rows == 3
        assert sheet.get_text(1, 0) == "=A1"

    def test_insert_inside_range_grows_it(self) -> None:
        sheet = Sheet.from_rows([["1", "=SUM(A1:A2)"], ["2", ""]])
        sheet.insert_row(1)
        sheet.set_cell_text(1, 0, "10")
        assert sheet.get_text(0, 1) == "=SUM(A1:A3)"
        assert sheet.get_value(0, 1) == Number(13)

    def test_delete_shrinks_range(self) -> None:
        sheet = Sheet.from_rows([["1"], ["2"], ["3"], ["=SUM(A1:A3)"]])
        sheet.delete_row(1)
        assert sheet.get_text(2, 0) == "=SUM(A1:A2)"
        assert sheet.get_value(2, 0) == Number(4)

    def test_deleting_whole_range(self) -> None:
        sheet = Sheet.from_rows([["5", ""], ["", "=SUM(A1:A1)"]])
        sheet.delete_row(0)
        assert sheet.get_text(0, 1) == "=SUM(#REF!)"
        assert sheet.get_value(0, 1) == Error(ErrorKind.REF)

    def test_deleted_reference(self) -> None:
        sheet = Sheet.from_rows([["1", ""], ["", "=A1*2"]])
        sheet.delete_row(0)
        assert sheet.get_text(0, 1) == "=#REF!*2"
        assert sheet.get_value(0, 1) == Error(ErrorKind.REF)

    def test_deleted_reference_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        sheet = Sheet.from_rows([["1", ""], ["", "=A1*2"]])
        with caplog.at_level(logging.DEBUG, logger="tabelle._sheet"):
            sheet.delete_row(0)
        assert "references a deleted cell: =#REF!*2" in caplog.text

    def test_untouched_formula_keeps_its_text(self) -> None:
        sheet = Sheet.from_rows([["=1 + 2", "=A1 * 2"], ["", ""]])
        sheet.insert_row(1)
        sheet.delete_row(2)
        assert sheet.get_text(0, 0) == "=1 + 2"
        assert sheet.get_text(0, 1) == "=A1 * 2"

    def test_fixed_rows_follow_edits(self) -> None:
        sheet = Sheet.from_rows([["h1"], ["h2"], ["x"]])
        sheet.fix_rows(2)
        sheet.insert_row(0)
        assert sheet.fixed_rows == 3
        sheet.insert_row(4)
        assert sheet.fixed_rows == 3
        sheet.delete_row(1)
        assert sheet.fixed_rows == 2

    def test_graph_is_rebuilt(self) -> None:
        sheet = Sheet.from_rows([["1"], ["=A1*2"]])
        sheet.insert_row(0)
        result = sheet.set_cell_text(1, 0, "5")
        assert sheet.get_value(2, 0) == Number(10)
        assert (2, 0) in result.changed

    def test_bounds(self) -> None:
        sheet = Sheet(2, 1)
        with pytest.raises(OutOfBoundsError):
            sheet.insert_row(3)
        with pytest.raises(OutOfBoundsError):
            sheet.delete_row(2)


class TestColumns:
    def test_delete_referenced_column(self) -> None:
        sheet = Sheet.from_rows([["1", "2", "=B1+A1"]])
        sheet.delete_column(1)
        assert sheet.n_cols == 2
        assert sheet.get_text(0, 1) == "=#REF!+A1"
        assert sheet.get_value(0, 1) == Error(ErrorKind.REF)

    def test_insert_shifts_references(self) -> None:
        sheet = Sheet.from_rows([["1", "2", "=A1+B1"]])
        sheet.insert_column(1)
        assert sheet.get_text(0, 3) == "=A1+C1"
        assert sheet.get_value(0, 3) == Number(3)

    def test_whole_column_reference(self) -> None:
        sheet = Sheet.from_rows([["1", "=SUM(A)"], ["2", ""]])
        sheet.insert_column(0)
        assert sheet.get_text(0, 2) == "=SUM(B)"
        assert sheet.get_value(0, 2) == Number(3)

    def test_lower_case_references_stay_lower_case(self) -> None:
        sheet = Sheet.from_rows([["1", "2", "=a1+b1"]])
        sheet.delete_column(0)
        assert sheet.get_text(0, 1) == "=#REF!+a1"

    def test_names_move_with_columns(self) -> None:
        sheet = Sheet(1, 2, column_names=["qty", "price"])
        sheet.insert_column(1, name="note")
        assert sheet.column_names == ["qty", "note", "price"]
        sheet.delete_column(0)
        assert sheet.column_names == ["note", "price"]

    def test_unnamed_columns_relabel(self) -> None:
        sheet = Sheet(1, 2)
        sheet.insert_column(0)
        assert sheet.column_names == ["A", "B", "C"]

    def test_insert_duplicate_name(self) -> None:
        sheet = Sheet(1, 1, column_names=["qty"])
        with pytest.raises(DuplicateColumnError):
            sheet.insert_column(0, name="qty")
        assert sheet.n_cols == 1

    def test_widths_move_with_columns(self) -> None:
        sheet = Sheet(1, 2)
        sheet.set_column_width(1, 3)
        sheet.insert_column(0)
        assert sheet.column_widths == [10, 10, 3]

    def test_bounds(self) -> None:
        sheet = Sheet(1, 2)
        with pytest.raises(OutOfBoundsError):
            sheet.insert_column(3)
        with pytest.raises(OutOfBoundsError):
            sheet.delete_column(-1)
