import logging

from promotrack.checks import PromotrackError, validate_sheets_exist
from promotrack.grid import Grid, XLSXGrid
from promotrack.repositories import ConfigRepository
from promotrack.schema import SHEET_NAMES, diff_headers, get_headers
from promotrack.table_service import TableService

logger = logging.getLogger(__name__)


def check_workbook(grid: Grid) -> list[str]:
    """
    Verify that a workbook can be used as datastore.

    Returns a list of problems, empty if the workbook is fine:
    - all registered sheets exist
    - the header row of each sheet matches the registered fields
    - the required keys are present in the configuration sheet
    """
    problems = []
    sheet_check = validate_sheets_exist(grid)
    problems.extend(f'Missing sheet "{name}".' for name in sheet_check.missing)

    for name in SHEET_NAMES:
        if name not in sheet_check.existing:
            continue
        problems.extend(diff_headers(get_headers(grid, name), name))

    if ConfigRepository.table in sheet_check.existing:
        missing_keys = ConfigRepository(TableService(grid)).missing_keys()
        problems.extend(
            f'Missing config key "{key}" in sheet "{ConfigRepository.table}".'
            for key in missing_keys
        )
    return problems


def check(args):
    logger.debug("Check subcommand started!")
    grid = XLSXGrid.open(args.WORKBOOK, autosave=False)
    problems = check_workbook(grid)
    for problem in problems:
        logger.error(problem)
    if problems:
        msg = f"Workbook check failed with {len(problems)} problem(s)."
        raise PromotrackError(msg)
    logger.info("-> Workbook check passed: %s", args.WORKBOOK)
