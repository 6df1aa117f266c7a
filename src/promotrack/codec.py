"""
Row codec: conversion between row-objects and flat lists of cell values.

Writing encodes typed values into primitives the grid can hold (dates become
formatted strings, ``None`` becomes an empty string). Reading zips the header
with the cell values and applies no coercion; ``to_record`` is the separate,
explicit step that validates a weakly typed row-object into its record model.
"""

import json
import logging
import types
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticUndefined

from promotrack import config
from promotrack.checks import PromotrackError

logger = logging.getLogger(__name__)


class RowValidationError(PromotrackError, ValueError):
    """Raised when a row-object cannot be validated into its record model."""

    def __init__(self, model_name: str, row: Mapping[str, Any], original_error):
        self.model_name = model_name
        self.row = dict(row)
        self.original_error = original_error
        super().__init__(
            f"Row {self.row!r} is not a valid {model_name}: {original_error}"
        )


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Return the inner type of ``X | None`` and whether None was allowed."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        is_optional = len(args) < len(get_args(annotation))
        if len(args) == 1:
            return args[0], is_optional
        return annotation, is_optional
    return annotation, False


class RowCodec:
    """Encode row-objects for the grid and decode grid rows into objects."""

    def __init__(
        self, date_format: str | None = None, datetime_format: str | None = None
    ):
        self.date_format = date_format or config.SETTINGS.date_format
        self.datetime_format = datetime_format or config.SETTINGS.datetime_format

    # --- writing ---

    def encode_value(self, value: Any) -> Any:
        """Convert a single value into a primitive cell value."""
        if value is None:
            return ""
        # bool first: it must not be mistaken for a number
        if isinstance(value, bool):
            return value
        # datetime is a subclass of date
        if isinstance(value, datetime):
            return value.strftime(self.datetime_format)
        if isinstance(value, date):
            return value.strftime(self.date_format)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, list | dict):
            return json.dumps(value, default=str, ensure_ascii=False)
        return value

    def encode(self, obj: Mapping[str, Any] | BaseModel, headers: Sequence[Any]):
        """Flatten a row-object into a list ordered by ``headers``."""
        if isinstance(obj, BaseModel):
            obj = obj.model_dump()
        return [self.encode_value(obj.get(header)) for header in headers]

    # --- reading ---

    def decode(self, row: Sequence[Any], headers: Sequence[Any]) -> dict[str, Any]:
        """Zip header fields with cell values positionally, without coercion."""
        padded = list(row) + [""] * (len(headers) - len(row))
        return {header: padded[idx] for idx, header in enumerate(headers)}

    def to_record(self, obj: Mapping[str, Any], model: type[BaseModel]) -> BaseModel:
        """Validate a weakly typed row-object into an instance of ``model``."""
        data: dict[str, Any] = {}
        for name, field_info in model.model_fields.items():
            value = obj.get(name)
            field_type, is_optional = _unwrap_optional(field_info.annotation)

            if value is None or (isinstance(value, str) and value.strip() == ""):
                has_default = (
                    field_info.default is not PydanticUndefined
                    or field_info.default_factory is not None
                )
                if is_optional:
                    data[name] = None
                elif not has_default:
                    msg = f"Required field '{name}' is empty"
                    raise RowValidationError(model.__name__, obj, msg)
                # else: skip - let pydantic use the model's default
                continue

            data[name] = self._convert_cell(value, field_type)

        try:
            return model(**data)
        except ValidationError as exc:
            raise RowValidationError(model.__name__, obj, exc) from exc

    def _convert_cell(self, value: Any, field_type: Any) -> Any:
        if field_type is str and not isinstance(value, str):
            # ids or account numbers may be stored as numbers by the grid
            if isinstance(value, float) and value.is_integer():
                return str(int(value))
            return str(value)
        if field_type is bool:
            return self._convert_bool(value)
        if field_type is date:
            return self._convert_date(value)
        if field_type is datetime and isinstance(value, str):
            try:
                return datetime.strptime(value.strip(), self.datetime_format)
            except ValueError:
                return value
        return value

    def _convert_bool(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("true", "1", "yes", "on")

    def _convert_date(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            try:
                return datetime.strptime(value.strip(), self.date_format).date()
            except ValueError:
                # let pydantic try ISO-8601
                return value
        return value
