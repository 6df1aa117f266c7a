"""Workbook generator: create the promotions workbook with all sheets.

Every sheet gets its header row from the schema registry. Optionally the
sheets are filled with a small consistent set of example records.
"""

import logging
from datetime import date, datetime
from pathlib import Path

from pydantic import BaseModel

from promotrack import schema
from promotrack.checks import PromotrackError
from promotrack.grid import Grid, XLSXGrid, XLSXSheet
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
    ConditionType,
    ConfigEntry,
    Evaluation,
    EvaluationStatus,
    Period,
    PeriodStatus,
    Promotion,
    PromotionStatus,
    PromotionType,
    Transfer,
    TransferStatus,
)
from promotrack.table_service import TableService

logger = logging.getLogger(__name__)

SAMPLE_DATA: dict[str, list[BaseModel]] = {
    BANKS_SHEET_NAME: [
        Bank(bank_id="BBVA001", name="BBVA", is_bodega=True, supports_bizum=True),
        Bank(bank_id="SANTANDER001", name="Santander", supports_bizum=True),
        Bank(
            bank_id="OPENBANK001",
            name="Openbank",
            is_bodega=True,
            supports_bizum=True,
        ),
    ],
    PROMOTIONS_SHEET_NAME: [
        Promotion(
            promo_id="PROMO001",
            bank_id="BBVA001",
            account_number="ES1234567890123456789012",
            type=PromotionType.PROMOCION_TRANSFERENCIAS,
            title="Bienvenida 300€",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
            benefits="300€ si cumples condiciones 6 meses",
            status=PromotionStatus.ACTIVA,
            period_cycle_json={"day_start": 5, "day_end": 4},
            notes="Requiere transferencias mensuales",
        )
    ],
    CONDITIONS_SHEET_NAME: [
        Condition(
            condition_id="COND001",
            promo_id="PROMO001",
            type=ConditionType.TRANSFERENCIAS_MINIMAS,
            params_json={"amount": 700, "is_salary_required": True},
            is_recurring=True,
        ),
        Condition(
            condition_id="COND002",
            promo_id="PROMO001",
            type=ConditionType.SALDO_MINIMO,
            params_json={"amount": 1000},
            is_recurring=True,
        ),
    ],
    PERIODS_SHEET_NAME: [
        Period(
            period_id="PERIOD001",
            promo_id="PROMO001",
            start_ts=datetime(2025, 1, 5),
            end_ts=datetime(2025, 2, 4),
            index=1,
            status=PeriodStatus.PENDING,
        ),
        Period(
            period_id="PERIOD002",
            promo_id="PROMO001",
            start_ts=datetime(2025, 2, 5),
            end_ts=datetime(2025, 3, 4),
            index=2,
            status=PeriodStatus.PENDING,
        ),
    ],
    EVALUATIONS_SHEET_NAME: [
        Evaluation(
            eval_id="EVAL001",
            condition_id="COND001",
            period_id="PERIOD001",
            status=EvaluationStatus.PENDING,
        )
    ],
    TRANSFERS_SHEET_NAME: [
        Transfer(
            transfer_id="TRANS001",
            from_bank_id="OPENBANK001",
            to_bank_id="BBVA001",
            amount=700,
            date_planned=date(2025, 1, 10),
            is_salary_marked=True,
            promo_id="PROMO001",
            status=TransferStatus.PLANIFICADA,
        )
    ],
    DOCUMENTS_SHEET_NAME: [],
    CONFIG_SHEET_NAME: [
        ConfigEntry(
            key="email_address",
            value="your.email@example.com",
            description="Email address for notifications",
            type="email",
        ),
        ConfigEntry(
            key="notify_transfers_days",
            value="3",
            description="Days before transfer to send reminder",
            type="number",
        ),
        ConfigEntry(
            key="notify_period_days",
            value="2",
            description="Days before period end to send reminder",
            type="number",
        ),
        ConfigEntry(
            key="notify_promotion_days",
            value="7",
            description="Days before promotion expiration to send reminder",
            type="number",
        ),
    ],
}


def create_sheets(grid: Grid, skip_if_exists: bool = True) -> list[str]:
    """Create all registered sheets with their header row.

    Returns the names of the sheets that were created. An existing sheet is
    kept as is with ``skip_if_exists``; otherwise its header is rewritten.
    """
    created = []
    existing = set(grid.sheet_names())
    for name, headers in schema.SHEET_HEADERS.items():
        if name in existing and skip_if_exists:
            logger.debug('Sheet "%s" already exists, skipping.', name)
            continue
        sheet = grid.create_sheet(name)
        sheet.set_range(1, 1, [headers])
        if isinstance(sheet, XLSXSheet):
            sheet.format_header()
        if name not in existing:
            created.append(name)
            logger.debug('Created sheet "%s".', name)
    return created


def add_sample_data(grid: Grid, sheet_name: str, clear_first: bool = False) -> int:
    """Write the example records of one sheet; returns the number of rows."""
    service = TableService(grid)
    if clear_first:
        service.clear_all_data(sheet_name)
    count = service.batch_append(sheet_name, SAMPLE_DATA.get(sheet_name, []))
    logger.debug('Added %i sample rows to "%s".', count, sheet_name)
    return count


def generate_workbook(
    path: Path, sample_data: bool = False, force: bool = False
) -> XLSXGrid:
    """Create a new workbook file with all sheets (and example data)."""
    path = Path(path)
    if path.exists() and not force:
        msg = f'File already exists: "{path}". Use --force to overwrite it.'
        logger.error(msg)
        raise PromotrackError(msg)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Build in memory and write once at the end.
    grid = XLSXGrid.create(path, autosave=False)
    create_sheets(grid)
    if sample_data:
        for name in schema.SHEET_NAMES:
            add_sample_data(grid, name)
    grid.save()
    grid.autosave = True
    return grid


def init(args) -> None:
    """CLI command handler to create a new workbook."""
    logger.debug("Init subcommand started!")
    generate_workbook(args.WORKBOOK, sample_data=args.sample_data, force=args.force)
    logger.info("Workbook created: %s", args.WORKBOOK)
    print(f"Created workbook: {args.WORKBOOK}")
