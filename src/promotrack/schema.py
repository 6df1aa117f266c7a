"""Schema registry: which tables exist and which fields make up their header.

The static registry is derived from the record models in ``promotrack.models``.
The header of a live sheet is always read from the grid and never cached, so
headers edited outside of promotrack are honored.
"""

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from promotrack.checks import PromotrackError
from promotrack.grid import Grid
from promotrack.models import (
    BANKS_SHEET_NAME,
    CONDITIONS_SHEET_NAME,
    CONFIG_SHEET_NAME,
    DOCUMENTS_SHEET_NAME,
    EVALUATIONS_SHEET_NAME,
    PERIODS_SHEET_NAME,
    PROMOTIONS_SHEET_NAME,
    TRANSFERS_SHEET_NAME,
    Bank,
    Condition,
    ConfigEntry,
    Document,
    Evaluation,
    Period,
    Promotion,
    Transfer,
)

logger = logging.getLogger(__name__)


class SchemaError(PromotrackError):
    """Raised for table or field names unknown to the registry."""


@dataclass(frozen=True)
class TableSchema:
    name: str
    model: type[BaseModel]

    @property
    def fields(self) -> list[str]:
        return list(self.model.model_fields)

    @property
    def id_field(self) -> str:
        """The identity column is always the first header field."""
        return self.fields[0]

    def column_index(self, field_name: str) -> int:
        try:
            return self.fields.index(field_name)
        except ValueError:
            msg = f'Table "{self.name}" has no field "{field_name}".'
            raise SchemaError(msg) from None


SCHEMAS: dict[str, TableSchema] = {
    schema.name: schema
    for schema in (
        TableSchema(BANKS_SHEET_NAME, Bank),
        TableSchema(PROMOTIONS_SHEET_NAME, Promotion),
        TableSchema(CONDITIONS_SHEET_NAME, Condition),
        TableSchema(PERIODS_SHEET_NAME, Period),
        TableSchema(EVALUATIONS_SHEET_NAME, Evaluation),
        TableSchema(TRANSFERS_SHEET_NAME, Transfer),
        TableSchema(DOCUMENTS_SHEET_NAME, Document),
        TableSchema(CONFIG_SHEET_NAME, ConfigEntry),
    )
}

SHEET_NAMES = list(SCHEMAS)

SHEET_HEADERS: dict[str, list[str]] = {
    name: schema.fields for name, schema in SCHEMAS.items()
}

# field name -> 0-based column index, per table
COLUMNS: dict[str, dict[str, int]] = {
    name: {field_name: idx for idx, field_name in enumerate(headers)}
    for name, headers in SHEET_HEADERS.items()
}


def get_schema(table: str) -> TableSchema:
    try:
        return SCHEMAS[table]
    except KeyError:
        msg = f'Unknown table "{table}". Known tables: {", ".join(SHEET_NAMES)}'
        raise SchemaError(msg) from None


def column_index(table: str, field_name: str) -> int:
    return get_schema(table).column_index(field_name)


def get_headers(grid: Grid, table: str) -> list[Any]:
    """Read the ordered field list from the header row of a live sheet."""
    sheet = grid.get_sheet(table)
    last_column = sheet.get_last_column()
    if last_column == 0:
        return []
    return sheet.get_range(1, 1, 1, last_column)[0]


def diff_headers(live: list[Any], table: str) -> list[str]:
    """Describe differences between a live header and the registered one."""
    expected = SHEET_HEADERS[table]
    problems = []
    missing = [name for name in expected if name not in live]
    unknown = [name for name in live if name and name not in expected]
    if missing:
        problems.append(f'Sheet "{table}" lacks columns: {", ".join(missing)}')
    if unknown:
        problems.append(
            f'Sheet "{table}" has unknown columns: {", ".join(map(str, unknown))}'
        )
    if not missing and not unknown and list(live[: len(expected)]) != expected:
        problems.append(f'Sheet "{table}" has its columns in a different order.')
    return problems
