"""Config module to share a configuration across all modules in promotrack."""

import logging
import sys
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator
from typing_extensions import Self

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

# === Configuration that is not imported from promotrack.toml ===

# Keys that must be present in the "Configuración" sheet of a workbook.
REQUIRED_CONFIG_KEYS = [
    "email_address",
    "notify_transfers_days",
    "notify_period_days",
    "notify_promotion_days",
]

# === Configuration imported from promotrack.toml stored as pydantic model ===


class Defaults(BaseModel):
    """Fallback values for keys that are missing in the config sheet."""

    notify_transfers_days: Annotated[int, Field(ge=0)] = 3
    notify_period_days: Annotated[int, Field(ge=0)] = 2
    notify_promotion_days: Annotated[int, Field(ge=0)] = 7
    periods_generate_ahead: Annotated[int, Field(ge=1)] = 12
    default_show_expired: bool = False
    items_per_page: Annotated[int, Field(ge=1)] = 20
    drive_folder_name: str = "Promociones Bancarias - Documentos"


class Settings(BaseModel):
    workbook: Path = Path("promociones.xlsx")
    date_format: str = "%Y-%m-%d"
    datetime_format: str = "%Y-%m-%d %H:%M:%S"
    autosave: bool = True
    defaults: Defaults = Defaults()
    default_config: bool = False

    @field_validator("date_format", "datetime_format")
    @classmethod
    def check_strftime_pattern(cls, value):
        if "%" not in value:
            msg = f'Date pattern "{value}" contains no strftime directive.'
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def check_workbook_suffix(self) -> Self:
        if self.workbook.suffix.lower() != ".xlsx":
            msg = f'The workbook must be an xlsx file but got "{self.workbook}".'
            raise ValueError(msg)
        return self


# These parameters will be updated/set by load_config.
SETTINGS = Settings(default_config=True)
SETTINGS_PATH: Path | None = None  # Path to promotrack.toml


def load_config(config_file: Path | None = None, config: Settings | None = None):
    new_conf = {}
    new_conf["SETTINGS_PATH"] = None
    if config_file is not None and not config_file.exists():
        logger.warning('Configuration file "%s" not found.', config_file)
    if (True if config_file is None else not config_file.exists()) and config is None:
        new_conf["SETTINGS"] = Settings(default_config=True)
        logger.debug("Initializing default config.")
    elif config_file and config is None:
        with config_file.open(mode="rb") as fp:
            conf = tomllib.load(fp)
        logger.debug("Config loaded from: %s", config_file)
        settings = Settings(**conf)
        # A relative workbook path is relative to the config file.
        if not settings.workbook.is_absolute():
            settings.workbook = config_file.resolve().parent / settings.workbook
        new_conf["SETTINGS"] = settings
        new_conf["SETTINGS_PATH"] = config_file.resolve()
    else:
        new_conf["SETTINGS"] = Settings.model_validate_json(config.model_dump_json())
        logger.debug("Refreshing global state of config.")

    for name, value in new_conf.items():
        globals()[name] = value
