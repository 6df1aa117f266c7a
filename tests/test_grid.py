"""Tests for the grid implementations (in-memory and openpyxl)."""

import logging

import pytest
from openpyxl import load_workbook

from promotrack.grid import (
    GridConfigurationError,
    MemoryGrid,
    MemorySheet,
    SheetNotFoundError,
    XLSXGrid,
)


@pytest.fixture
def xlsx_grid(tmp_path):
    grid = XLSXGrid.create(tmp_path / "grid.xlsx")
    sheet = grid.create_sheet("Banks")
    sheet.set_range(1, 1, [["bank_id", "name", "active"]])
    return grid


class TestMemoryGrid:
    def test_missing_sheet(self):
        grid = MemoryGrid({"Banks": [["bank_id"]]})
        assert grid.sheet_names() == ["Banks"]
        with pytest.raises(SheetNotFoundError, match='Run "promotrack init"'):
            grid.get_sheet("Promotions")
        assert grid.create_sheet("Promotions").name == "Promotions"
        assert grid.get_sheet("Promotions").get_last_row() == 0

    def test_extent_ignores_empty_cells(self):
        sheet = MemorySheet("S", [["a", "b", ""], ["c", None], ["", ""], []])
        assert sheet.get_last_row() == 2  # noqa: PLR2004
        assert sheet.get_last_column() == 2  # noqa: PLR2004
        assert MemorySheet("Empty").get_data_range() == []

    def test_get_range_pads_with_empty_strings(self):
        sheet = MemorySheet("S", [["a", None], ["b"]])
        assert sheet.get_range(1, 1, 3, 3) == [
            ["a", "", ""],
            ["b", "", ""],
            ["", "", ""],
        ]

    def test_append_and_delete(self):
        sheet = MemorySheet("S", [["id"], ["1"], ["2"], ["3"]])
        assert sheet.append_row(["4"]) == 5  # noqa: PLR2004
        sheet.delete_row(2)
        assert sheet.get_data_range() == [["id"], ["2"], ["3"], ["4"]]
        sheet.delete_rows(2, 2)
        assert sheet.get_data_range() == [["id"], ["4"]]

    def test_set_range_grows_sheet(self):
        sheet = MemorySheet("S")
        sheet.set_range(2, 2, [["x", "y"], ["z"]])
        assert sheet.get_data_range() == [["", "", ""], ["", "x", "y"], ["", "z", ""]]


class TestXLSXGrid:
    def test_autosave(self, xlsx_grid):
        sheet = xlsx_grid.get_sheet("Banks")
        assert sheet.append_row(["B1", "", True]) == 2  # noqa: PLR2004

        reopened = XLSXGrid.open(xlsx_grid.path)
        assert reopened.sheet_names() == ["Banks"]
        assert reopened.get_sheet("Banks").get_data_range() == [
            ["bank_id", "name", "active"],
            ["B1", "", True],
        ]

    def test_empty_cells_written_as_none(self, xlsx_grid):
        xlsx_grid.get_sheet("Banks").append_row(["B1", "", False])
        ws = load_workbook(xlsx_grid.path)["Banks"]
        assert ws["B2"].value is None
        assert ws["C2"].value is False

    def test_without_autosave(self, tmp_path):
        grid = XLSXGrid.create(tmp_path / "manual.xlsx", autosave=False)
        grid.create_sheet("Banks").set_range(1, 1, [["bank_id"]])
        assert not grid.path.exists()
        grid.save()
        assert XLSXGrid.open(grid.path).get_sheet("Banks").get_last_row() == 1

    def test_delete_rows(self, xlsx_grid):
        sheet = xlsx_grid.get_sheet("Banks")
        sheet.append_row(["B1", "One", True])
        sheet.append_row(["B2", "Two", True])
        sheet.delete_row(2)
        reopened = XLSXGrid.open(xlsx_grid.path).get_sheet("Banks")
        assert reopened.get_last_row() == 2  # noqa: PLR2004
        assert reopened.get_range(2, 1, 1, 3) == [["B2", "Two", True]]

    def test_format_header(self, xlsx_grid):
        xlsx_grid.get_sheet("Banks").format_header()
        ws = load_workbook(xlsx_grid.path)["Banks"]
        assert ws["A1"].font.bold
        assert ws.freeze_panes == "A2"

    def test_missing_sheet(self, xlsx_grid):
        with pytest.raises(SheetNotFoundError):
            xlsx_grid.get_sheet("Transfers")

    def test_open_missing_file(self, tmp_path, caplog):
        fpath = tmp_path / "missing.xlsx"
        with caplog.at_level(logging.ERROR), pytest.raises(GridConfigurationError):
            XLSXGrid.open(fpath)
        assert f'Could not open workbook "{fpath}"' in caplog.text

    def test_open_broken_file(self, tmp_path):
        fpath = tmp_path / "broken.xlsx"
        fpath.write_text("not a workbook")
        with pytest.raises(GridConfigurationError, match="Could not open workbook"):
            XLSXGrid.open(fpath)

    def test_open_uses_config(self, xlsx_grid, temp_config):
        temp_config.load_config(
            config=temp_config.Settings(workbook=xlsx_grid.path, autosave=False)
        )
        grid = XLSXGrid.open()
        assert grid.path == xlsx_grid.path
        assert grid.autosave is False
