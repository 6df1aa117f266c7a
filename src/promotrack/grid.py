"""
Grid access for the workbook used as a row-oriented datastore.

This module contains:
- The abstract ``Grid``/``Sheet`` interface the table service works against
- ``XLSXGrid``, the openpyxl-backed implementation bound to a workbook file
- ``MemoryGrid``, an in-memory implementation for tests and dry runs

Row and column numbers are 1-based like in spreadsheet applications. Empty
cells are read as empty strings; there is no distinct null cell state.
"""

import logging
import zipfile
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from promotrack import config
from promotrack.checks import PromotrackError

logger = logging.getLogger(__name__)


class GridConfigurationError(PromotrackError):
    """Raised when the backing workbook cannot be opened or written."""


class SheetNotFoundError(PromotrackError):
    """Raised when a named sheet does not exist in the workbook."""

    def __init__(self, sheet_name: str):
        self.sheet_name = sheet_name
        super().__init__(
            f'Sheet "{sheet_name}" not found. Run "promotrack init" to create '
            "a workbook with all sheets."
        )


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class Sheet(ABC):
    """A named 2-D grid of cells with a header in row 1."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def get_last_row(self) -> int:
        """Index of the last row with content (0 for an empty sheet)."""

    @abstractmethod
    def get_last_column(self) -> int:
        """Index of the last column with content (0 for an empty sheet)."""

    @abstractmethod
    def get_range(
        self, row: int, column: int, num_rows: int, num_columns: int
    ) -> list[list[Any]]:
        """Read a rectangular block of cell values."""

    @abstractmethod
    def set_range(self, row: int, column: int, values: Sequence[Sequence[Any]]):
        """Write a rectangular block of cell values starting at (row, column)."""

    @abstractmethod
    def delete_rows(self, start: int, count: int = 1) -> None:
        """Remove rows physically; rows below move up."""

    def append_row(self, values: Sequence[Any]) -> int:
        """Write values after the last row with content and return its index."""
        row = self.get_last_row() + 1
        self.set_range(row, 1, [values])
        return self.get_last_row()

    def delete_row(self, index: int) -> None:
        self.delete_rows(index, 1)

    def get_data_range(self) -> list[list[Any]]:
        """All values from A1 to the last row and column with content."""
        last_row = self.get_last_row()
        last_column = self.get_last_column()
        if last_row == 0 or last_column == 0:
            return []
        return self.get_range(1, 1, last_row, last_column)


class Grid(ABC):
    """A workbook: a collection of sheets addressed by name."""

    @abstractmethod
    def sheet_names(self) -> list[str]: ...

    @abstractmethod
    def _get_sheet(self, name: str) -> Sheet: ...

    @abstractmethod
    def create_sheet(self, name: str) -> Sheet: ...

    def get_sheet(self, name: str) -> Sheet:
        """Resolve a sheet by name, failing fast if it is missing."""
        if name not in self.sheet_names():
            raise SheetNotFoundError(name)
        return self._get_sheet(name)

    def save(self) -> None:  # noqa: B027
        """Persist pending changes. A no-op for grids without backing file."""


# === In-memory implementation ===


class MemorySheet(Sheet):
    def __init__(self, name: str, rows: list[list[Any]] | None = None):
        self._name = name
        self.rows: list[list[Any]] = [list(row) for row in rows or []]

    @property
    def name(self) -> str:
        return self._name

    def get_last_row(self) -> int:
        for idx in range(len(self.rows), 0, -1):
            if any(not _is_empty(v) for v in self.rows[idx - 1]):
                return idx
        return 0

    def get_last_column(self) -> int:
        last = 0
        for row in self.rows:
            for idx in range(len(row), last, -1):
                if not _is_empty(row[idx - 1]):
                    last = idx
                    break
        return last

    def get_range(self, row, column, num_rows, num_columns):
        block = []
        for r in range(row - 1, row - 1 + num_rows):
            source = self.rows[r] if r < len(self.rows) else []
            block.append(
                [
                    "" if c >= len(source) or source[c] is None else source[c]
                    for c in range(column - 1, column - 1 + num_columns)
                ]
            )
        return block

    def set_range(self, row, column, values):
        for r_offset, row_values in enumerate(values):
            r = row - 1 + r_offset
            while len(self.rows) <= r:
                self.rows.append([])
            target = self.rows[r]
            for c_offset, value in enumerate(row_values):
                c = column - 1 + c_offset
                while len(target) <= c:
                    target.append("")
                target[c] = value

    def delete_rows(self, start, count=1):
        del self.rows[start - 1 : start - 1 + count]


class MemoryGrid(Grid):
    """Grid kept entirely in memory."""

    def __init__(self, sheets: dict[str, list[list[Any]]] | None = None):
        self._sheets: dict[str, MemorySheet] = {
            name: MemorySheet(name, rows) for name, rows in (sheets or {}).items()
        }

    def sheet_names(self):
        return list(self._sheets)

    def _get_sheet(self, name):
        return self._sheets[name]

    def create_sheet(self, name):
        if name not in self._sheets:
            self._sheets[name] = MemorySheet(name)
        return self._sheets[name]


# === openpyxl implementation ===


class XLSXSheet(Sheet):
    def __init__(self, worksheet: Worksheet, grid: "XLSXGrid"):
        self.worksheet = worksheet
        self.grid = grid

    @property
    def name(self) -> str:
        return self.worksheet.title

    def get_last_row(self) -> int:
        last = 0
        for idx, row in enumerate(self.worksheet.iter_rows(values_only=True), 1):
            if any(not _is_empty(v) for v in row):
                last = idx
        return last

    def get_last_column(self) -> int:
        last = 0
        for idx, column in enumerate(
            self.worksheet.iter_cols(values_only=True), start=1
        ):
            if any(not _is_empty(v) for v in column):
                last = idx
        return last

    def get_range(self, row, column, num_rows, num_columns):
        if num_rows < 1 or num_columns < 1:
            return []
        return [
            ["" if value is None else value for value in values]
            for values in self.worksheet.iter_rows(
                min_row=row,
                max_row=row + num_rows - 1,
                min_col=column,
                max_col=column + num_columns - 1,
                values_only=True,
            )
        ]

    def set_range(self, row, column, values):
        for r_offset, row_values in enumerate(values):
            for c_offset, value in enumerate(row_values):
                self.worksheet.cell(
                    row=row + r_offset,
                    column=column + c_offset,
                    value=None if value == "" else value,
                )
        self.grid.changed()

    def delete_rows(self, start, count=1):
        self.worksheet.delete_rows(start, count)
        self.grid.changed()

    def format_header(self) -> None:
        """Bold header row and freeze it so it stays visible when scrolling."""
        for cell in self.worksheet[1]:
            cell.font = Font(bold=True)
        self.worksheet.freeze_panes = "A2"
        self.grid.changed()


class XLSXGrid(Grid):
    """Grid backed by an xlsx file.

    With ``autosave`` every mutation is written to disk immediately, so the
    file always reflects the last completed operation.
    """

    def __init__(self, workbook: Workbook, path: Path | None = None, autosave=True):
        self.workbook = workbook
        self.path = path
        self.autosave = autosave

    @classmethod
    def open(cls, path: Path | None = None, autosave: bool | None = None):
        """Open an existing workbook; the default path comes from the config."""
        path = Path(config.SETTINGS.workbook if path is None else path)
        autosave = config.SETTINGS.autosave if autosave is None else autosave
        if not path.exists():
            msg = (
                f'Could not open workbook "{path}". Please check the "workbook" '
                "setting in the config. Error: file not found"
            )
            logger.error(msg)
            raise GridConfigurationError(msg)
        try:
            workbook = load_workbook(path)
        except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
            msg = f'Could not open workbook "{path}". Error: {exc}'
            logger.error(msg)
            raise GridConfigurationError(msg) from exc
        logger.debug('Opened workbook "%s".', path)
        return cls(workbook, path, autosave=autosave)

    @classmethod
    def create(cls, path: Path, autosave: bool = True):
        """Create a new empty workbook (without any sheet) for ``path``."""
        workbook = Workbook()
        workbook.remove(workbook.active)
        return cls(workbook, Path(path), autosave=autosave)

    def sheet_names(self):
        return list(self.workbook.sheetnames)

    def _get_sheet(self, name):
        return XLSXSheet(self.workbook[name], self)

    def create_sheet(self, name):
        if name not in self.workbook.sheetnames:
            self.workbook.create_sheet(title=name)
            self.changed()
        return self._get_sheet(name)

    def changed(self) -> None:
        if self.autosave:
            self.save()

    def save(self) -> None:
        if self.path is None:
            return
        if not self.workbook.sheetnames:
            # openpyxl cannot write a workbook without any sheet.
            return
        try:
            self.workbook.save(self.path)
        except OSError as exc:
            msg = f'Could not write workbook "{self.path}". Error: {exc}'
            logger.error(msg)
            raise GridConfigurationError(msg) from exc
