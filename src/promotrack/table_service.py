"""
Table service: generic CRUD operations on the sheets of a workbook.

All data access goes through this service. Each operation works on one
table, addressed by its sheet name. The first header column is the identity
column; uniqueness of identity values is the caller's responsibility.

Lookups that find nothing return sentinels (``None``, ``0`` or ``False``)
instead of raising. Missing sheets and storage failures raise.

Concurrency: nothing here is atomic. ``update_by_id`` reads the current row
and writes the merged full row back, so two writers updating the same row
can lose one of the updates. Deleting a row shifts every row below it up by
one; row numbers must be re-resolved by id after any delete.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from promotrack import schema
from promotrack.codec import RowCodec
from promotrack.grid import Grid, Sheet
from promotrack.results import BatchFailure, BatchResult
from promotrack.utils import log_failures

logger = logging.getLogger(__name__)

HEADER_ROW = 1
FIRST_DATA_ROW = 2


def _same_value(cell: Any, value: Any) -> bool:
    """Equality that never matches a bool against a number (True == 1)."""
    if isinstance(cell, bool) != isinstance(value, bool):
        return False
    return cell == value


class TableService:
    """CRUD/query engine over the tables of one grid."""

    def __init__(self, grid: Grid, codec: RowCodec | None = None):
        self.grid = grid
        self.codec = codec or RowCodec()

    def _sheet(self, table: str) -> Sheet:
        return self.grid.get_sheet(table)

    # ========================================================================
    # READ OPERATIONS
    # ========================================================================

    @log_failures("TableService")
    def get_headers(self, table: str) -> list[Any]:
        return schema.get_headers(self.grid, table)

    @log_failures("TableService")
    def get_all_data(self, table: str) -> list[list[Any]]:
        """All data rows (header excluded) as flat lists."""
        sheet = self._sheet(table)
        last_row = sheet.get_last_row()
        if last_row <= HEADER_ROW:
            return []
        last_column = sheet.get_last_column()
        return sheet.get_range(FIRST_DATA_ROW, 1, last_row - 1, last_column)

    @log_failures("TableService")
    def get_all_data_as_objects(self, table: str) -> list[dict[str, Any]]:
        """All data rows as mappings of header field to cell value."""
        sheet = self._sheet(table)
        last_row = sheet.get_last_row()
        if last_row <= HEADER_ROW:
            return []
        last_column = sheet.get_last_column()
        headers = sheet.get_range(HEADER_ROW, 1, 1, last_column)[0]
        rows = sheet.get_range(FIRST_DATA_ROW, 1, last_row - 1, last_column)
        return [self.codec.decode(row, headers) for row in rows]

    @log_failures("TableService")
    def find_by_id(self, table: str, record_id: Any) -> dict[str, Any] | None:
        """First row whose identity field equals ``record_id``, else None.

        If an id occurs more than once the first row in sheet order wins.
        """
        headers = self.get_headers(table)
        if not headers:
            return None
        id_field = headers[0]
        return next(
            (
                row
                for row in self.get_all_data_as_objects(table)
                if _same_value(row[id_field], record_id)
            ),
            None,
        )

    @log_failures("TableService")
    def find_row_number_by_id(self, table: str, record_id: Any) -> int:
        """1-based row number of ``record_id`` in column A, 0 if not found."""
        data = self._sheet(table).get_data_range()
        for idx in range(1, len(data)):  # skip header
            if _same_value(data[idx][0], record_id):
                return idx + 1
        return 0

    @log_failures("TableService")
    def find_by_column(
        self, table: str, column: str, value: Any
    ) -> list[dict[str, Any]]:
        return [
            row
            for row in self.get_all_data_as_objects(table)
            if column in row and _same_value(row[column], value)
        ]

    def id_exists(self, table: str, record_id: Any) -> bool:
        return self.find_row_number_by_id(table, record_id) != 0

    @log_failures("TableService")
    def get_row_count(self, table: str) -> int:
        """Number of data rows; the header is not counted."""
        return max(0, self._sheet(table).get_last_row() - 1)

    @log_failures("TableService")
    def get_records(self, table: str) -> list[BaseModel]:
        """Typed view of all rows, validated into the table's record model."""
        model = schema.get_schema(table).model
        return [
            self.codec.to_record(row, model)
            for row in self.get_all_data_as_objects(table)
        ]

    @log_failures("TableService")
    def find_record_by_id(self, table: str, record_id: Any) -> BaseModel | None:
        row = self.find_by_id(table, record_id)
        if row is None:
            return None
        return self.codec.to_record(row, schema.get_schema(table).model)

    # ========================================================================
    # WRITE OPERATIONS
    # ========================================================================

    @log_failures("TableService")
    def append_row(self, table: str, values: Sequence[Any]) -> int:
        """Append flat values as the new last row and return its row number."""
        return self._sheet(table).append_row(list(values))

    @log_failures("TableService")
    def append_row_from_object(
        self, table: str, obj: Mapping[str, Any] | BaseModel
    ) -> int:
        """Encode ``obj`` against the live header and append it.

        No uniqueness check is done; generate a collision-free id beforehand.
        """
        headers = self.get_headers(table)
        return self.append_row(table, self.codec.encode(obj, headers))

    @log_failures("TableService")
    def update_row(self, table: str, row_number: int, values: Sequence[Any]):
        """Overwrite the row at ``row_number`` with a full-width value list."""
        self._sheet(table).set_range(row_number, 1, [list(values)])

    @log_failures("TableService")
    def update_cell(self, table: str, row_number: int, column_number: int, value):
        self._sheet(table).set_range(
            row_number, column_number, [[self.codec.encode_value(value)]]
        )

    @log_failures("TableService")
    def update_by_id(
        self, table: str, record_id: Any, updates: Mapping[str, Any]
    ) -> bool:
        """Merge ``updates`` into the row of ``record_id``.

        Header fields present in ``updates`` get the encoded new value, all
        other fields keep the value currently stored. Returns False if the id
        is not found.
        """
        row_number = self.find_row_number_by_id(table, record_id)
        if row_number == 0:
            return False

        sheet = self._sheet(table)
        headers = self.get_headers(table)
        # Read the row again right before writing to keep out-of-band edits.
        current = self.codec.decode(
            sheet.get_range(row_number, 1, 1, len(headers))[0], headers
        )
        merged = [
            self.codec.encode_value(updates[header])
            if header in updates
            else current[header]
            for header in headers
        ]
        self.update_row(table, row_number, merged)
        return True

    def batch_update(
        self, table: str, items: Iterable[Mapping[str, Any]]
    ) -> BatchResult:
        """Apply ``update_by_id`` to each ``{"id": ..., "updates": {...}}`` item.

        The batch never aborts on a failing item; failures are tallied.
        """
        result = BatchResult()
        for index, item in enumerate(items):
            record_id = item.get("id")
            try:
                if self.update_by_id(table, record_id, item.get("updates") or {}):
                    result.add_success(record_id)
                    continue
                error = f"Not found: {record_id}"
            except Exception as exc:
                error = str(exc)
            result.add_failure(BatchFailure(id=record_id, index=index, error=error))
        if result.fail_count:
            logger.warning(
                'Batch update of "%s": %i updated, %i failed.',
                table,
                result.success_count,
                result.fail_count,
            )
        return result

    @log_failures("TableService")
    def batch_append(
        self, table: str, objects: Iterable[Mapping[str, Any] | BaseModel]
    ) -> int:
        """Write all objects as one block after the last row; return the count."""
        objects = list(objects)
        if not objects:
            return 0
        headers = self.get_headers(table)
        rows = [self.codec.encode(obj, headers) for obj in objects]
        sheet = self._sheet(table)
        sheet.set_range(sheet.get_last_row() + 1, 1, rows)
        return len(rows)

    # ========================================================================
    # DELETE OPERATIONS
    # ========================================================================

    @log_failures("TableService")
    def delete_row(self, table: str, row_number: int) -> None:
        """Remove a row; all rows below move up by one."""
        self._sheet(table).delete_row(row_number)

    @log_failures("TableService")
    def delete_by_id(self, table: str, record_id: Any) -> bool:
        row_number = self.find_row_number_by_id(table, record_id)
        if row_number == 0:
            return False
        self.delete_row(table, row_number)
        return True

    @log_failures("TableService")
    def clear_all_data(self, table: str) -> None:
        """Delete all data rows and keep the header."""
        sheet = self._sheet(table)
        last_row = sheet.get_last_row()
        if last_row > HEADER_ROW:
            sheet.delete_rows(FIRST_DATA_ROW, last_row - 1)
