# Common pytest fixtures for all test modules
import itertools
from pathlib import Path

import pytest

from promotrack import config
from promotrack.grid import MemoryGrid
from promotrack.repositories import BankRepository
from promotrack.table_service import TableService
from promotrack.template import create_sheets, generate_workbook


@pytest.fixture
def memory_grid():
    """An in-memory workbook with all sheets and their header rows."""
    grid = MemoryGrid()
    create_sheets(grid)
    return grid


@pytest.fixture
def service(memory_grid):
    return TableService(memory_grid)


@pytest.fixture
def id_source():
    """Deterministic ids: BANK_0001, BANK_0002, ..."""
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}_{next(counter):04d}"


@pytest.fixture
def bank_repo(service, id_source):
    return BankRepository(service, id_source=id_source)


@pytest.fixture
def xlsx_workbook(tmp_path):
    """Path to a new workbook file filled with the example records."""
    path = tmp_path / "promociones.xlsx"
    generate_workbook(path, sample_data=True)
    return path


@pytest.fixture
def temp_config():
    """
    Provides a temporary config that can be safely changed in test functions.

    After the test the config will be reset to default.
    """
    yield config

    # Reset the globally changed config to default.
    config.load_config()


@pytest.fixture(scope="session")
def datadir():
    """DATADIR as a LocalPath"""
    return Path(__file__).resolve().parent / "data"
