"""Field catalog types: what a target entity accepts from a spreadsheet."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel


class DataType(StrEnum):
    STRING = "string"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    NUMBER = "number"
    BOOLEAN = "boolean"
    CURRENCY = "currency"
    ENUM = "enum"


class Transform(StrEnum):
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    TRIM = "trim"
    PHONE_FORMAT = "phone_format"
    DATE_FORMAT = "date_format"
    CURRENCY_FORMAT = "currency_format"
    NONE = "none"


class FieldDefinition(BaseModel):
    """One importable field of a target entity.

    ``name`` is a dot path into the created document, e.g. ``address.city``.
    """

    model_config = {"frozen": True}

    name: str
    label: str
    type: DataType = DataType.STRING
    required: bool = False
    enum_values: Optional[tuple[str, ...]] = None
    description: str = ""
    example: str = ""
