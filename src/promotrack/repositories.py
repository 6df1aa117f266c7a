"""
Entity repositories: table-specific wrappers around the table service.

A repository applies the defaults and validation of its entity and decides
between soft delete (flag flipped, row kept) and hard delete (row removed).
Records are returned as the pydantic models of ``promotrack.models``.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel

from promotrack import config, schema
from promotrack.checks import PromotrackError, check_missing_config_keys
from promotrack.models import BANKS_SHEET_NAME, CONFIG_SHEET_NAME, Bank, ConfigEntry
from promotrack.results import OperationResult, ValidationResult
from promotrack.table_service import TableService
from promotrack.utils import generate_id, log_failures

logger = logging.getLogger(__name__)

BANK_UPDATABLE_FIELDS = ("name", "is_bodega", "supports_bizum", "active")
BANK_FLAG_FIELDS = ("is_bodega", "supports_bizum", "active")


class BankValidationError(PromotrackError, ValueError):
    pass


class BankNotFoundError(PromotrackError):
    pass


class Repository:
    """Typed access to the rows of one table, addressed by identity value."""

    table: str = ""
    id_prefix: str = ""

    def __init__(
        self,
        service: TableService,
        id_source: Callable[[str], str] = generate_id,
    ):
        self.service = service
        self.id_source = id_source
        self.schema = schema.get_schema(self.table)

    @property
    def model(self) -> type[BaseModel]:
        return self.schema.model

    def new_id(self) -> str:
        return self.id_source(self.id_prefix)

    def _to_record(self, row: Mapping[str, Any]) -> BaseModel:
        return self.service.codec.to_record(row, self.model)

    def _rows(self) -> list[dict[str, Any]]:
        """All rows that carry an identity value; blank rows are skipped."""
        rows = []
        for row in self.service.get_all_data_as_objects(self.table):
            if row.get(self.schema.id_field) in (None, ""):
                logger.debug('Skipping row without id in "%s".', self.table)
                continue
            rows.append(row)
        return rows

    def get_by_id(self, record_id: str) -> BaseModel | None:
        row = self.service.find_by_id(self.table, record_id)
        return None if row is None else self._to_record(row)

    def exists(self, record_id: str) -> bool:
        return self.service.id_exists(self.table, record_id)

    def find_by(self, field_name: str, value: Any) -> list[BaseModel]:
        return [
            self._to_record(row)
            for row in self.service.find_by_column(self.table, field_name, value)
        ]


class BankRepository(Repository):
    """Banks are soft-deleted by default; hard delete is explicit."""

    table = BANKS_SHEET_NAME
    id_prefix = "BANK"

    # === create ===

    @log_failures("BankRepository")
    def create(self, data: Mapping[str, Any]) -> Bank:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            msg = "Bank name is required"
            raise BankValidationError(msg)

        bank = Bank(
            bank_id=self.new_id(),
            name=name.strip(),
            is_bodega=data.get("is_bodega") is True,
            supports_bizum=data.get("supports_bizum") is True,
            active=data.get("active") is not False,
        )
        self.service.append_row_from_object(self.table, bank)
        logger.info("Bank created: %s - %s", bank.bank_id, bank.name)
        return bank

    # === read ===

    @log_failures("BankRepository")
    def get_by_id(self, bank_id: str) -> Bank | None:
        if not bank_id:
            msg = "Bank ID is required"
            raise BankValidationError(msg)
        return super().get_by_id(bank_id)

    @log_failures("BankRepository")
    def get_all(self, include_inactive: bool = False) -> list[Bank]:
        rows = self._rows()
        if not include_inactive:
            # strictly True: "TRUE" strings or 1 do not count as active
            rows = [row for row in rows if row.get("active") is True]
        return [self._to_record(row) for row in rows]

    def get_by_bodega(
        self, is_bodega: bool, include_inactive: bool = False
    ) -> list[Bank]:
        return [
            bank
            for bank in self.get_all(include_inactive)
            if bank.is_bodega is is_bodega
        ]

    def get_supporting_bizum(self, include_inactive: bool = False) -> list[Bank]:
        return [bank for bank in self.get_all(include_inactive) if bank.supports_bizum]

    # === update ===

    @log_failures("BankRepository")
    def update(self, bank_id: str, updates: Mapping[str, Any]) -> Bank:
        """Update the allow-listed fields of a bank and return the fresh record.

        Keys outside of ``BANK_UPDATABLE_FIELDS`` are dropped silently.
        """
        if self.get_by_id(bank_id) is None:
            msg = f"Bank not found: {bank_id}"
            raise BankNotFoundError(msg)

        filtered: dict[str, Any] = {}
        for key, value in updates.items():
            if key not in BANK_UPDATABLE_FIELDS:
                continue
            if key == "name":
                if not isinstance(value, str) or not value.strip():
                    msg = "Bank name cannot be empty"
                    raise BankValidationError(msg)
                filtered[key] = value.strip()
            else:
                filtered[key] = value is True

        if not filtered:
            msg = "No valid fields to update"
            raise BankValidationError(msg)

        if not self.service.update_by_id(self.table, bank_id, filtered):
            msg = f"Failed to update bank: {bank_id}"
            raise PromotrackError(msg)

        updated = self.get_by_id(bank_id)
        logger.info("Bank updated: %s - %s", bank_id, updated.name)
        return updated

    def activate(self, bank_id: str) -> Bank:
        return self.update(bank_id, {"active": True})

    def deactivate(self, bank_id: str) -> Bank:
        return self.update(bank_id, {"active": False})

    # === delete ===

    def delete(self, bank_id: str) -> OperationResult:
        """Soft delete: set ``active`` to False and keep the row."""
        try:
            bank = self.deactivate(bank_id)
        except PromotrackError as exc:
            logger.error("BankRepository.delete(%r) failed: %s", bank_id, exc)
            return OperationResult(success=False, message=str(exc))
        logger.info("Bank deleted (soft): %s - %s", bank_id, bank.name)
        return OperationResult(
            success=True, message="Bank deactivated successfully", data=bank
        )

    def permanently_delete(self, bank_id: str) -> OperationResult:
        """Hard delete: remove the row. This cannot be undone."""
        try:
            bank = self.get_by_id(bank_id)
            if bank is None:
                msg = f"Bank not found: {bank_id}"
                raise BankNotFoundError(msg)
            if not self.service.delete_by_id(self.table, bank_id):
                msg = f"Failed to delete bank: {bank_id}"
                raise PromotrackError(msg)
        except PromotrackError as exc:
            logger.error(
                "BankRepository.permanently_delete(%r) failed: %s", bank_id, exc
            )
            return OperationResult(success=False, message=str(exc))
        logger.info("Bank permanently deleted: %s - %s", bank_id, bank.name)
        return OperationResult(success=True, message="Bank permanently deleted")

    # === validation ===

    @staticmethod
    def validate(data: Mapping[str, Any], partial: bool = False) -> ValidationResult:
        """Check the shape of a bank payload.

        With ``partial`` (used for updates) the name is only checked if given.
        """
        errors = []
        name = data.get("name")
        if (not partial or "name" in data) and (
            not isinstance(name, str) or not name.strip()
        ):
            errors.append("Bank name is required")
        for flag in BANK_FLAG_FIELDS:
            if data.get(flag) is not None and not isinstance(data[flag], bool):
                errors.append(f"{flag} must be a boolean")
        return ValidationResult(valid=not errors, errors=errors)


class ConfigRepository(Repository):
    """The key-value configuration sheet, read in bulk."""

    table = CONFIG_SHEET_NAME

    @staticmethod
    def convert_value(value: Any, value_type: Any) -> Any:
        """Convert a stored value according to the ``type`` column."""
        value_type = str(value_type or "").strip().lower()
        if value_type == "number":
            if isinstance(value, int | float) and not isinstance(value, bool):
                return value
            try:
                return int(str(value).strip())
            except ValueError:
                pass
            try:
                return float(str(value).strip())
            except ValueError:
                logger.warning('Config value "%s" is not a number.', value)
                return value
        if value_type == "boolean":
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() in ("true", "1", "yes", "sí", "si")
        return "" if value is None else str(value)

    @log_failures("ConfigRepository")
    def get_all(self) -> dict[str, Any]:
        return {
            str(row["key"]): self.convert_value(row.get("value"), row.get("type"))
            for row in self._rows()
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Typed value of ``key``.

        A missing key gives ``default`` or, if none is passed, the value from
        the configured defaults.
        """
        values = self.get_all()
        if key in values:
            return values[key]
        if default is not None:
            return default
        return config.SETTINGS.defaults.model_dump().get(key)

    @log_failures("ConfigRepository")
    def set(
        self, key: str, value: Any, description: str = "", value_type: str = ""
    ) -> None:
        updates: dict[str, Any] = {"value": value}
        if description:
            updates["description"] = description
        if value_type:
            updates["type"] = value_type
        if self.service.update_by_id(self.table, key, updates):
            logger.debug('Config key "%s" updated.', key)
            return
        entry = ConfigEntry(key=key, description=description, type=value_type)
        self.service.append_row_from_object(
            self.table, {**entry.model_dump(), **updates}
        )
        logger.debug('Config key "%s" added.', key)

    def missing_keys(self, required=None) -> list[str]:
        required = config.REQUIRED_CONFIG_KEYS if required is None else required
        return check_missing_config_keys(self.get_all(), required)
