"""End-to-end: load, edit, recalculate and save a small budget sheet."""

from __future__ import annotations

from pathlib import Path

from tabelle import Error, ErrorKind, Number, Session, load_sheet, save_sheet

BUDGET = """item,amount
rent,1200
food,350.5
travel,80
total,=SUM(B2:B4)
share,=B5/2
"""


class TestBudget:
    def _load(self, tmp_path: Path):  # type: ignore[no-untyped-def]
        path = tmp_path / "budget.csv"
        path.write_text(BUDGET)
        return load_sheet(path)

    def test_totals(self, tmp_path: Path) -> None:
        sheet = self._load(tmp_path)
        assert sheet.get_value(4, 1) == Number(1630.5)
        assert sheet.display_text(5, 1) == "815.25"

    def test_edit_propagates(self, tmp_path: Path) -> None:
        sheet = self._load(tmp_path)
        result = sheet.set_cell_text(3, 1, "100")
        assert result.recomputed == ((3, 1), (4, 1), (5, 1))
        assert sheet.get_value(5, 1) == Number(825.25)

    def test_insert_row_below_total_range(self, tmp_path: Path) -> None:
        sheet = self._load(tmp_path)
        sheet.insert_row(4)
        sheet.set_cell_text(4, 0, "books")
        sheet.set_cell_text(4, 1, "20")
        # The total range ended just above the insertion, so it does not grow.
        assert sheet.get_text(5, 1) == "=SUM(B2:B4)"
        sheet.set_cell_text(5, 1, "=SUM(B2:B5)")
        assert sheet.get_value(6, 1) == Number(825.25)

    def test_bad_input_shows_errors(self, tmp_path: Path) -> None:
        sheet = self._load(tmp_path)
        sheet.set_cell_text(2, 1, "lots")
        assert sheet.get_value(4, 1) == Number(1280)
        sheet.set_cell_text(2, 1, "=B3")
        assert sheet.get_value(2, 1) == Error(ErrorKind.CYCLE)
        assert sheet.get_value(5, 1) == Error(ErrorKind.CYCLE)
        assert sheet.display_text(5, 1) == "#CYCLE"

    def test_sort_and_save_as_xlsx(self, tmp_path: Path) -> None:
        sheet = self._load(tmp_path)
        sheet.fix_rows(1)
        sheet.delete_row(5)
        sheet.delete_row(4)
        sheet.sort_column(1)
        assert [sheet.get_text(r, 0) for r in range(sheet.n_rows)] == ["item", "travel", "food", "rent"]

        out = tmp_path / "budget.xlsx"
        save_sheet(sheet, out)
        reloaded = load_sheet(out)
        assert reloaded.fixed_rows == 1
        assert reloaded.get_value(3, 1) == Number(1200)

    def test_session_round_trip(self, tmp_path: Path) -> None:
        session = Session(self._load(tmp_path))
        session.run("find travel")
        assert session.cursor == (3, 0)
        session.run("fit A")
        out = tmp_path / "copy.tsv"
        session.run(f"save {out}")
        copy = load_sheet(out)
        assert copy.column_widths[0] == 10
        assert copy.get_value(4, 1) == Number(1630.5)
