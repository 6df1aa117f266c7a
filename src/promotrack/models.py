"""Pydantic record models for the sheets of the promotions workbook.

The order of the fields in each model is the column order of the sheet
header. The first field is the identity column of the table.
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

BANKS_SHEET_NAME = "Banks"
PROMOTIONS_SHEET_NAME = "Promotions"
CONDITIONS_SHEET_NAME = "Conditions"
PERIODS_SHEET_NAME = "Periods"
EVALUATIONS_SHEET_NAME = "Evaluations"
TRANSFERS_SHEET_NAME = "Transfers"
DOCUMENTS_SHEET_NAME = "Documents"
CONFIG_SHEET_NAME = "Configuración"

ALL_SHEET_NAMES = (
    BANKS_SHEET_NAME,
    PROMOTIONS_SHEET_NAME,
    CONDITIONS_SHEET_NAME,
    PERIODS_SHEET_NAME,
    EVALUATIONS_SHEET_NAME,
    TRANSFERS_SHEET_NAME,
    DOCUMENTS_SHEET_NAME,
    CONFIG_SHEET_NAME,
)


# === Enums ===


class PromotionType(str, Enum):
    PLAZO_FIJO = "Plazo fijo"
    PROMOCION_TRANSFERENCIAS = "Promoción transferencias"
    OTRO = "Otro"


class PromotionStatus(str, Enum):
    ACTIVA = "Activa"
    EN_PAUSA = "En pausa"
    COMPLETADA = "Completada"
    FALLIDA = "Fallida"
    EXPIRADA = "Expirada"


class ConditionType(str, Enum):
    SALDO_MINIMO = "Saldo mínimo"
    BIZUM_ACTIVO = "Bizum activo"
    TRANSFERENCIAS_MINIMAS = "Transferencias mínimas"
    RECIBOS_DOMICILIADOS = "Recibos domiciliados"
    COMPRAS_TARJETA = "Compras tarjeta"
    CONDICION_PUNTUAL = "Condición puntual"


class EvaluationStatus(str, Enum):
    PENDING = "Pending"
    MET = "Met"
    FAILED = "Failed"


class PeriodStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class TransferStatus(str, Enum):
    PLANIFICADA = "Planificada"
    REALIZADA = "Realizada"
    ATRASADA = "Atrasada"
    CANCELADA = "Cancelada"


def _parse_json_blob(value: Any) -> Any:
    # JSON blobs are stored as text in a single cell.
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return value


def _parse_timestamp(value: Any) -> Any:
    if isinstance(value, str) and value.strip():
        return datetime.fromisoformat(value.strip())
    return value


# === Table records ===


class Bank(BaseModel):
    """A bank account the user holds promotions with."""

    bank_id: str
    name: str = ""
    is_bodega: bool = False
    supports_bizum: bool = False
    active: bool = True


class Promotion(BaseModel):
    promo_id: str
    bank_id: str = ""
    account_number: str = ""
    type: PromotionType | None = None
    title: str = ""
    start_date: date | None = None
    end_date: date | None = None
    benefits: str = ""
    status: PromotionStatus | None = None
    period_cycle_json: dict = Field(
        default_factory=dict,
        description='Recurrence cycle, e.g. {"day_start": 5, "day_end": 4}',
    )
    notes: str = ""

    @field_validator("period_cycle_json", mode="before")
    @classmethod
    def parse_cycle(cls, value):
        return _parse_json_blob(value)


class Condition(BaseModel):
    condition_id: str
    promo_id: str = ""
    type: ConditionType | None = None
    params_json: dict = Field(default_factory=dict)
    is_recurring: bool = False

    @field_validator("params_json", mode="before")
    @classmethod
    def parse_params(cls, value):
        return _parse_json_blob(value)


class Period(BaseModel):
    period_id: str
    promo_id: str = ""
    start_ts: datetime | None = None
    end_ts: datetime | None = None
    index: int | None = None
    status: PeriodStatus | None = None

    @field_validator("start_ts", "end_ts", mode="before")
    @classmethod
    def parse_ts(cls, value):
        return _parse_timestamp(value)


class Evaluation(BaseModel):
    eval_id: str
    condition_id: str = ""
    period_id: str = ""
    status: EvaluationStatus | None = None
    user_notes: str = ""
    marked_by: str = ""
    marked_on: datetime | None = None

    @field_validator("marked_on", mode="before")
    @classmethod
    def parse_marked_on(cls, value):
        return _parse_timestamp(value)


class Transfer(BaseModel):
    transfer_id: str
    from_bank_id: str = ""
    to_bank_id: str = ""
    amount: float | None = None
    date_planned: date | None = None
    date_done: date | None = None
    is_salary_marked: bool = False
    promo_id: str = ""
    status: TransferStatus | None = None


class Document(BaseModel):
    document_id: str
    promo_id: str = ""
    file_id: str = ""
    filename: str = ""
    uploaded_on: datetime | None = None

    @field_validator("uploaded_on", mode="before")
    @classmethod
    def parse_uploaded_on(cls, value):
        return _parse_timestamp(value)


class ConfigEntry(BaseModel):
    """One row of the key-value configuration sheet."""

    key: str
    value: str = ""
    description: str = ""
    type: str = ""
