"""Tests for A1-style reference resolution."""

from __future__ import annotations

import pytest

from tabelle._errors import ParseError, ParseFailure
from tabelle.calc._references import (
    cell_name,
    column_name_to_index,
    expand_range,
    index_to_column_name,
    parse_cell_name,
    resolve_cell,
    split_reference,
)


class TestColumnNames:
    def test_single_letters(self) -> None:
        assert column_name_to_index("A") == 0
        assert column_name_to_index("Z") == 25

    def test_double_letters(self) -> None:
        assert column_name_to_index("AA") == 26
        assert column_name_to_index("AZ") == 51
        assert column_name_to_index("az") == 51

    def test_index_to_name(self) -> None:
        assert index_to_column_name(0) == "A"
        assert index_to_column_name(27) == "AB"
        assert index_to_column_name(27, lowercase=True) == "ab"

    def test_round_trip(self) -> None:
        for i in range(800):
            assert column_name_to_index(index_to_column_name(i)) == i

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            column_name_to_index("")
        with pytest.raises(ValueError):
            column_name_to_index("A1")
        with pytest.raises(ValueError):
            index_to_column_name(-1)


class TestCellNames:
    def test_cell_name(self) -> None:
        assert cell_name(0, 0) == "A1"
        assert cell_name(9, 2, lowercase=True) == "c10"

    def test_parse_cell_name(self) -> None:
        assert parse_cell_name("B3") == (2, 1)
        assert parse_cell_name("aa10") == (9, 26)

    @pytest.mark.parametrize("bad", ["A0", "3B", "B", "", "A-1"])
    def test_parse_cell_name_invalid(self, bad: str) -> None:
        with pytest.raises(ValueError):
            parse_cell_name(bad)


class TestResolution:
    def test_split(self) -> None:
        assert split_reference("AB12") == ("AB", "12")
        assert split_reference("b") == ("b", None)

    def test_split_mixed_case(self) -> None:
        with pytest.raises(ParseError) as exc:
            split_reference("aB1", 4)
        assert exc.value.reason == ParseFailure.MIXED_CASE
        assert exc.value.position == 4

    def test_resolve_in_bounds(self) -> None:
        assert resolve_cell("C5", n_rows=5, n_cols=3) == (4, 2)

    def test_resolve_column_out_of_bounds(self) -> None:
        with pytest.raises(ParseError) as exc:
            resolve_cell("D1", n_rows=5, n_cols=3)
        assert exc.value.reason == ParseFailure.INVALID_REFERENCE

    def test_resolve_row_out_of_bounds(self) -> None:
        with pytest.raises(ParseError) as exc:
            resolve_cell("A6", n_rows=5, n_cols=3)
        assert exc.value.reason == ParseFailure.INVALID_REFERENCE

    def test_row_zero_is_invalid(self) -> None:
        with pytest.raises(ParseError):
            resolve_cell("A0", n_rows=5, n_cols=3)


class TestExpandRange:
    def test_row_major(self) -> None:
        assert expand_range("A1:B2") == [(0, 0), (0, 1), (1, 0), (1, 1)]

    def test_reversed_corners(self) -> None:
        assert expand_range("B2:A1") == expand_range("A1:B2")

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid range"):
            expand_range("A1")
