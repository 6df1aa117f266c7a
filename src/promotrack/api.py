"""
API handlers: bank operations exposed to front ends (CLI, web, scripts).

Every handler returns an ``ApiResponse`` envelope and never raises for
expected failures; the envelope is JSON-serializable via ``to_dict()``.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from promotrack.checks import PromotrackError
from promotrack.grid import XLSXGrid
from promotrack.repositories import BankRepository
from promotrack.results import ApiResponse, BatchFailure, BatchResult
from promotrack.table_service import TableService

logger = logging.getLogger(__name__)


def _error(exc: Exception) -> ApiResponse:
    return ApiResponse(success=False, error=str(exc))


def _validation_failed(errors: list[str]) -> ApiResponse:
    return ApiResponse(success=False, error="Validation failed", errors=errors)


def _batch_response(result: BatchResult) -> ApiResponse:
    return ApiResponse(
        success=True,
        data=[bank.model_dump() for bank in result.items],
        count=len(result.items),
        success_count=result.success_count,
        fail_count=result.fail_count,
        failed=[
            {key: value for key, value in vars(f).items() if value is not None}
            for f in result.failures
        ],
    )


class BanksAPI:
    def __init__(self, repository: BankRepository):
        self.repository = repository

    def _list(self, banks) -> ApiResponse:
        return ApiResponse(
            success=True, data=[bank.model_dump() for bank in banks], count=len(banks)
        )

    def get_all_banks(self, include_inactive: bool = False) -> ApiResponse:
        try:
            return self._list(self.repository.get_all(include_inactive))
        except (PromotrackError, ValueError) as exc:
            return _error(exc)

    def get_bank_by_id(self, bank_id: str) -> ApiResponse:
        try:
            bank = self.repository.get_by_id(bank_id)
        except (PromotrackError, ValueError) as exc:
            return _error(exc)
        if bank is None:
            return ApiResponse(success=False, error="Bank not found")
        return ApiResponse(success=True, data=bank.model_dump())

    def create_bank(self, data: Mapping[str, Any]) -> ApiResponse:
        validation = self.repository.validate(data)
        if not validation.valid:
            return _validation_failed(validation.errors)
        try:
            bank = self.repository.create(data)
        except (PromotrackError, ValueError) as exc:
            return _error(exc)
        return ApiResponse(
            success=True, data=bank.model_dump(), message="Bank created successfully"
        )

    def update_bank(self, bank_id: str, updates: Mapping[str, Any]) -> ApiResponse:
        # partial: a rename-free update must not require a name
        validation = self.repository.validate(updates, partial=True)
        if not validation.valid:
            return _validation_failed(validation.errors)
        try:
            bank = self.repository.update(bank_id, updates)
        except (PromotrackError, ValueError) as exc:
            return _error(exc)
        return ApiResponse(
            success=True, data=bank.model_dump(), message="Bank updated successfully"
        )

    def delete_bank(self, bank_id: str) -> ApiResponse:
        result = self.repository.delete(bank_id)
        if not result.success:
            return ApiResponse(success=False, error=result.message)
        return ApiResponse(success=True, message="Bank deactivated successfully")

    def activate_bank(self, bank_id: str) -> ApiResponse:
        try:
            bank = self.repository.activate(bank_id)
        except (PromotrackError, ValueError) as exc:
            return _error(exc)
        return ApiResponse(
            success=True, data=bank.model_dump(), message="Bank activated successfully"
        )

    def permanently_delete_bank(self, bank_id: str) -> ApiResponse:
        """Remove the bank row. This cannot be undone."""
        result = self.repository.permanently_delete(bank_id)
        if not result.success:
            return ApiResponse(success=False, error=result.message)
        return ApiResponse(success=True, message="Bank permanently deleted")

    def get_banks_by_bodega(
        self, is_bodega: bool, include_inactive: bool = False
    ) -> ApiResponse:
        try:
            banks = self.repository.get_by_bodega(is_bodega, include_inactive)
        except (PromotrackError, ValueError) as exc:
            return _error(exc)
        return self._list(banks)

    def get_banks_supporting_bizum(self, include_inactive: bool = False):
        try:
            banks = self.repository.get_supporting_bizum(include_inactive)
        except (PromotrackError, ValueError) as exc:
            return _error(exc)
        return self._list(banks)

    # === batch operations ===

    def batch_create_banks(self, banks_data: Iterable[Mapping[str, Any]]):
        """Create each bank independently; failures are listed with their index."""
        result = BatchResult()
        for index, bank_data in enumerate(banks_data):
            try:
                result.add_success(self.repository.create(bank_data))
            except (PromotrackError, ValueError) as exc:
                result.add_failure(
                    BatchFailure(index=index, data=dict(bank_data), error=str(exc))
                )
        if result.fail_count:
            logger.warning(
                "Batch create: %i banks created, %i failed.",
                result.success_count,
                result.fail_count,
            )
        return _batch_response(result)

    def batch_update_banks(self, updates: Iterable[Mapping[str, Any]]):
        """Apply ``{"bank_id": ..., "updates": {...}}`` items one by one."""
        result = BatchResult()
        for item in updates:
            bank_id = item.get("bank_id")
            try:
                result.add_success(
                    self.repository.update(bank_id, item.get("updates") or {})
                )
            except (PromotrackError, ValueError) as exc:
                result.add_failure(BatchFailure(id=bank_id, error=str(exc)))
        if result.fail_count:
            logger.warning(
                "Batch update: %i banks updated, %i failed.",
                result.success_count,
                result.fail_count,
            )
        return _batch_response(result)


def banks(args):
    """CLI command handler that runs one bank action and prints the envelope."""
    logger.debug("Banks subcommand started!")
    grid = XLSXGrid.open(args.WORKBOOK)
    api = BanksAPI(BankRepository(TableService(grid)))

    if args.show:
        response = api.get_bank_by_id(args.show)
    elif args.add:
        response = api.create_bank(
            {"name": args.add, "is_bodega": args.bodega, "supports_bizum": args.bizum}
        )
    elif args.rename:
        bank_id, name = args.rename
        response = api.update_bank(bank_id, {"name": name})
    elif args.deactivate:
        response = api.delete_bank(args.deactivate)
    elif args.activate:
        response = api.activate_bank(args.activate)
    elif args.purge:
        response = api.permanently_delete_bank(args.purge)
    else:
        response = api.get_all_banks(include_inactive=args.all)

    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    if not response.success:
        msg = response.error or "Bank operation failed."
        raise PromotrackError(msg)
