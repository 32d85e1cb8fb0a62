"""Tests for the delimited text codec."""

from __future__ import annotations

from pathlib import Path

import pytest

from tabelle import (
    EMPTY,
    Number,
    Sheet,
    SheetLoadError,
    SheetSaveError,
    Text,
    dumps_csv,
    load_csv,
    loads_csv,
    save_csv,
)
from tabelle._csv import read_rows, sniff_delimiter


class TestSniff:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("a,b,c\n1,2,3\n4,5,6\n", ","),
            ("a;b;c\n1;2;3\n4;5;6\n", ";"),
            ("a\tb\tc\n1\t2\t3\n4\t5\t6\n", "\t"),
        ],
    )
    def test_known_delimiters(self, text: str, expected: str) -> None:
        assert sniff_delimiter(text) == expected

    def test_falls_back_to_comma(self) -> None:
        assert sniff_delimiter("") == ","


class TestReadRows:
    def test_blank_lines_are_kept(self) -> None:
        assert read_rows("a,b\n\n1,2\n,\n", ",") == [["a", "b"], [], ["1", "2"], ["", ""]]

    def test_trailing_blank_lines_are_dropped(self) -> None:
        assert read_rows("1,2\n\n\n", ",") == [["1", "2"]]

    def test_cell_text_is_kept(self) -> None:
        assert read_rows(" 1 ,  x \n", ",") == [[" 1 ", "  x "]]

    def test_quoted_delimiter(self) -> None:
        assert read_rows('"a,b",c\n', ",") == [["a,b", "c"]]


class TestLoads:
    def test_values(self) -> None:
        sheet = loads_csv("1,apple\n2,=A1+A2\n")
        assert sheet.get_value(0, 0) == Number(1)
        assert sheet.get_value(0, 1) == Text("apple")
        assert sheet.get_value(1, 1) == Number(3)

    def test_blank_line_is_an_empty_row(self) -> None:
        sheet = loads_csv("1,2\n\n3,4\n", delimiter=",")
        assert (sheet.n_rows, sheet.n_cols) == (3, 2)
        assert sheet.get_value(1, 0) == EMPTY
        assert sheet.get_value(2, 1) == Number(4)

    def test_ragged_rows_are_padded(self) -> None:
        sheet = loads_csv("1,2,3\n4\n", delimiter=",")
        assert (sheet.n_rows, sheet.n_cols) == (2, 3)
        assert sheet.get_value(1, 2) == EMPTY

    def test_semicolons(self) -> None:
        sheet = loads_csv("1;2\n3;=SUM(A1:B1,A2)\n")
        assert sheet.get_value(1, 1) == Number(6)

    def test_header(self) -> None:
        sheet = loads_csv("name,price\npear,2\napple,3\n", header=True)
        assert sheet.column_names == ["name", "price"]
        assert sheet.n_rows == 2
        assert sheet.get_text(0, 0) == "pear"

    def test_blank_header_cell_falls_back_to_letter(self) -> None:
        sheet = loads_csv("name,\n1,2\n", header=True, delimiter=",")
        assert sheet.column_names == ["name", "B"]

    def test_duplicate_header(self) -> None:
        with pytest.raises(SheetLoadError):
            loads_csv("a,a\n1,2\n", header=True, delimiter=",")

    def test_no_cells(self) -> None:
        with pytest.raises(SheetLoadError):
            loads_csv("")
        with pytest.raises(SheetLoadError):
            loads_csv("\n\n", delimiter=",")


class TestDumps:
    def _sheet(self) -> Sheet:
        return Sheet.from_rows([["5.50", "=A1*2", "=1/4"], ["x", "=1/0", ""]])

    def test_formulas_are_flattened(self) -> None:
        assert dumps_csv(self._sheet()) == "5.50,11,0.25\nx,#DIV/0,\n"

    def test_formulas_kept(self) -> None:
        assert dumps_csv(self._sheet(), formulas=True) == "5.50,=A1*2,=1/4\nx,=1/0,\n"

    def test_header_and_delimiter(self) -> None:
        sheet = Sheet.from_rows([["1", "2"]], column_names=["a", None])
        assert dumps_csv(sheet, header=True, delimiter=";") == "a;B\n1;2\n"

    def test_quoting(self) -> None:
        sheet = Sheet.from_rows([["a,b", "c"]])
        assert dumps_csv(sheet) == '"a,b",c\n'


class TestFiles:
    def test_round_trip_literals(self, tmp_path: Path) -> None:
        path = tmp_path / "data.csv"
        sheet = Sheet.from_rows([["1", "pear"], ["", ""], ["2.5", " x "]])
        save_csv(sheet, path)
        loaded = load_csv(path)
        assert loaded.snapshot() == sheet.snapshot()
        assert loaded.get_text(2, 1) == " x "

    def test_round_trip_formulas(self, tmp_path: Path) -> None:
        path = tmp_path / "data.csv"
        sheet = Sheet.from_rows([["1", "2"], ["=A1+B1", "=SUM(A1:B1)"]])
        save_csv(sheet, path, formulas=True)
        loaded = load_csv(path)
        assert loaded.get_text(1, 0) == "=A1+B1"
        assert loaded.get_value(1, 1) == Number(3)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SheetLoadError):
            load_csv(tmp_path / "missing.csv")

    def test_undecodable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "latin1.csv"
        path.write_bytes("caf\xe9,1\n".encode("latin-1"))
        with pytest.raises(SheetLoadError):
            load_csv(path)
        assert load_csv(path, encoding="latin-1", delimiter=",").get_text(0, 0) == "caf\xe9"

    def test_unwritable_path(self, tmp_path: Path) -> None:
        with pytest.raises(SheetSaveError):
            save_csv(Sheet.new(1, 1), tmp_path)
