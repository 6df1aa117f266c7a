"""Module with checks of the workbook structure.

These checks cannot be handled with pydantic model validation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from promotrack.models import ALL_SHEET_NAMES
from promotrack.results import SheetCheck

if TYPE_CHECKING:
    from collections.abc import Iterable

    from promotrack.grid import Grid

logger = logging.getLogger(__name__)


class PromotrackError(Exception):
    pass


def validate_sheets_exist(grid: Grid, required: Iterable[str] | None = None):
    """Check that all sheets required by the application are in the workbook."""
    required = list(ALL_SHEET_NAMES if required is None else required)
    existing = grid.sheet_names()
    missing = [name for name in required if name not in existing]
    logger.debug("-> Found sheets: %s", ", ".join(existing))
    if missing:
        logger.warning("Missing sheets: %s", ", ".join(missing))
    return SheetCheck(success=not missing, missing=missing, existing=existing)


def check_missing_config_keys(
    existing_keys: Iterable[str], required_keys: Iterable[str]
) -> list[str]:
    """Return the required configuration keys absent from the config sheet."""
    existing = set(existing_keys)
    missing = [key for key in required_keys if key not in existing]
    if missing:
        logger.warning("Missing configuration keys: %s", ", ".join(missing))
    return missing
