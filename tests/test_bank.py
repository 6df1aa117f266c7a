"""Tests for the bank repository."""

import logging
import re

import pytest

from promotrack.models import BANKS_SHEET_NAME, Bank
from promotrack.repositories import (
    BankNotFoundError,
    BankRepository,
    BankValidationError,
)

BANKS = BANKS_SHEET_NAME


@pytest.fixture
def five_banks(bank_repo):
    """3 active and 2 inactive banks."""
    bank_repo.create({"name": "BBVA", "is_bodega": True, "supports_bizum": True})
    bank_repo.create({"name": "Santander", "supports_bizum": True})
    bank_repo.create({"name": "Openbank", "is_bodega": True})
    bank_repo.create({"name": "Old Bank", "active": False})
    bank_repo.create({"name": "Closed Bank", "is_bodega": True, "active": False})
    return bank_repo


def test_create_defaults(bank_repo, service, caplog):
    with caplog.at_level(logging.INFO):
        bank = bank_repo.create({"name": "  ING  "})
    assert bank == Bank(
        bank_id="BANK_0001",
        name="ING",
        is_bodega=False,
        supports_bizum=False,
        active=True,
    )
    assert "Bank created: BANK_0001 - ING" in caplog.text
    assert service.find_by_id(BANKS, "BANK_0001") == bank.model_dump()


def test_create_flags_need_explicit_true(bank_repo):
    bank = bank_repo.create(
        {"name": "ING", "is_bodega": "yes", "supports_bizum": 1, "active": "no"}
    )
    assert bank.is_bodega is False
    assert bank.supports_bizum is False
    assert bank.active is True
    assert bank_repo.create({"name": "Off", "active": False}).active is False


@pytest.mark.parametrize("data", [{}, {"name": ""}, {"name": "   "}, {"name": 42}])
def test_create_requires_name(bank_repo, service, data):
    with pytest.raises(BankValidationError, match="Bank name is required"):
        bank_repo.create(data)
    assert service.get_row_count(BANKS) == 0


def test_default_id_source(service):
    bank = BankRepository(service).create({"name": "ING"})
    assert bank.bank_id.startswith("BANK_")
    assert re.fullmatch(r"BANK_\d{8}T\d{6}_[0-9A-F]{6}", bank.bank_id)


def test_get_by_id(bank_repo):
    created = bank_repo.create({"name": "ING", "supports_bizum": True})
    assert bank_repo.get_by_id(created.bank_id) == created
    assert bank_repo.get_by_id("BANK_9999") is None
    assert bank_repo.exists(created.bank_id)
    assert not bank_repo.exists("BANK_9999")


def test_get_by_id_requires_id(bank_repo, caplog):
    with caplog.at_level(logging.ERROR), pytest.raises(BankValidationError):
        bank_repo.get_by_id("")
    assert "BankRepository.get_by_id('') failed: Bank ID is required" in caplog.text


def test_get_all_filters_inactive(five_banks):
    assert len(five_banks.get_all()) == 3  # noqa: PLR2004
    assert len(five_banks.get_all(include_inactive=True)) == 5  # noqa: PLR2004
    assert all(bank.active for bank in five_banks.get_all())


def test_get_all_active_must_be_true(bank_repo, service):
    service.append_row(BANKS, ["B1", "Text flag", False, False, "TRUE"])
    service.append_row(BANKS, ["B2", "Real flag", False, False, True])
    assert [bank.bank_id for bank in bank_repo.get_all()] == ["B2"]


def test_get_all_skips_rows_without_id(bank_repo, service):
    service.append_row(BANKS, ["", "Ghost", False, False, True])
    service.append_row(BANKS, ["B1", "Real", False, False, True])
    assert [bank.name for bank in bank_repo.get_all(include_inactive=True)] == [
        "Real"
    ]


def test_get_by_bodega(five_banks):
    assert [bank.name for bank in five_banks.get_by_bodega(True)] == [
        "BBVA",
        "Openbank",
    ]
    assert [bank.name for bank in five_banks.get_by_bodega(False)] == ["Santander"]
    bodega_all = five_banks.get_by_bodega(True, include_inactive=True)
    assert [bank.name for bank in bodega_all][-1] == "Closed Bank"


def test_get_supporting_bizum(five_banks):
    assert [bank.name for bank in five_banks.get_supporting_bizum()] == [
        "BBVA",
        "Santander",
    ]


def test_update(bank_repo, service, caplog):
    bank_repo.create({"name": "ING"})
    other = bank_repo.create({"name": "Other"})
    with caplog.at_level(logging.INFO):
        updated = bank_repo.update(
            "BANK_0001", {"name": " ING Direct ", "supports_bizum": True, "x": 1}
        )
    assert updated == Bank(bank_id="BANK_0001", name="ING Direct", supports_bizum=True)
    assert "Bank updated: BANK_0001 - ING Direct" in caplog.text
    assert bank_repo.get_by_id(other.bank_id) == other
    assert service.find_row_number_by_id(BANKS, "BANK_0001") == 2  # noqa: PLR2004


def test_update_normalizes_flags(bank_repo):
    bank_repo.create({"name": "ING", "is_bodega": True})
    updated = bank_repo.update("BANK_0001", {"is_bodega": "yes"})
    assert updated.is_bodega is False


def test_update_without_valid_fields(bank_repo, service):
    bank_repo.create({"name": "ING"})
    before = service.get_all_data(BANKS)
    with pytest.raises(BankValidationError, match="No valid fields to update"):
        bank_repo.update("BANK_0001", {"bank_id": "HACK", "colour": "red"})
    assert service.get_all_data(BANKS) == before


def test_update_empty_name(bank_repo):
    bank_repo.create({"name": "ING"})
    with pytest.raises(BankValidationError, match="Bank name cannot be empty"):
        bank_repo.update("BANK_0001", {"name": " "})
    assert bank_repo.get_by_id("BANK_0001").name == "ING"


def test_update_missing_bank(bank_repo, caplog):
    with caplog.at_level(logging.ERROR), pytest.raises(BankNotFoundError):
        bank_repo.update("BANK_9999", {"name": "x"})
    assert "BankRepository.update('BANK_9999') failed" in caplog.text


def test_activate_deactivate(bank_repo):
    bank_repo.create({"name": "ING"})
    assert bank_repo.deactivate("BANK_0001").active is False
    assert bank_repo.get_all() == []
    assert bank_repo.activate("BANK_0001").active is True
    assert len(bank_repo.get_all()) == 1


def test_soft_delete(bank_repo, service):
    bank_repo.create({"name": "ING"})
    result = bank_repo.delete("BANK_0001")
    assert result.success
    assert result.data.active is False
    assert service.get_row_count(BANKS) == 1
    assert bank_repo.get_all() == []


def test_soft_delete_missing_bank(bank_repo):
    result = bank_repo.delete("BANK_9999")
    assert result.success is False
    assert result.message == "Bank not found: BANK_9999"


def test_permanently_delete(five_banks, service):
    row_of_last = service.find_row_number_by_id(BANKS, "BANK_0005")
    result = five_banks.permanently_delete("BANK_0002")
    assert result.success
    assert five_banks.get_by_id("BANK_0002") is None
    assert service.find_row_number_by_id(BANKS, "BANK_0005") == row_of_last - 1


def test_permanently_delete_missing_bank(bank_repo):
    result = bank_repo.permanently_delete("BANK_9999")
    assert result.success is False
    assert result.message == "Bank not found: BANK_9999"


@pytest.mark.parametrize(
    ("data", "partial", "errors"),
    [
        ({"name": "ING"}, False, []),
        ({}, False, ["Bank name is required"]),
        ({"active": False}, True, []),
        ({"name": ""}, True, ["Bank name is required"]),
        (
            {"name": "ING", "is_bodega": "yes", "active": 1},
            False,
            ["is_bodega must be a boolean", "active must be a boolean"],
        ),
    ],
)
def test_validate(data, partial, errors):
    result = BankRepository.validate(data, partial=partial)
    assert result.valid is (not errors)
    assert result.errors == errors
