"""Value transforms and row-to-document conversion, applied at persistence time."""

from __future__ import annotations

import re
from typing import Any, Optional

from ferry.core.types import FieldPath
from ferry.models.field import DataType, Transform
from ferry.models.schema_mapping import ColumnMapping
from ferry.pipeline.validators import parse_boolean, parse_date, parse_number

NON_DIGIT_RE = re.compile(r"\D")


def phone_format(value: str) -> str:
    """Format US numbers as ``(XXX) XXX-XXXX``; leave anything else alone."""
    digits = NON_DIGIT_RE.sub("", value)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    return value


def date_format(value: str) -> str:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else value


def currency_format(value: str) -> str:
    amount = parse_number(value)
    return f"{amount:.2f}" if amount is not None else value


def transform_value(value: str, transform: Optional[Transform]) -> str:
    if transform is None or transform == Transform.NONE:
        return value
    if transform == Transform.UPPERCASE:
        return value.upper()
    if transform == Transform.LOWERCASE:
        return value.lower()
    if transform == Transform.TRIM:
        return value.strip()
    if transform == Transform.PHONE_FORMAT:
        return phone_format(value)
    if transform == Transform.DATE_FORMAT:
        return date_format(value)
    if transform == Transform.CURRENCY_FORMAT:
        return currency_format(value)
    return value


def coerce_value(value: str, data_type: DataType) -> Any:
    """Convert transformed text to the stored type; ``None`` means no value."""
    if data_type == DataType.BOOLEAN:
        return parse_boolean(value)
    if data_type == DataType.DATE:
        parsed = parse_date(value)
        return parsed.isoformat() if parsed else None
    if data_type in (DataType.NUMBER, DataType.CURRENCY):
        return parse_number(value)
    if data_type == DataType.ENUM:
        return value.strip().lower() or None
    return value or None


def set_nested_value(doc: dict[str, Any], path: FieldPath, value: Any) -> None:
    """``set_nested_value(d, "address.city", "Austin")`` -> ``{"address": {"city": ...}}``."""
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        node = current.setdefault(part, {})
        if not isinstance(node, dict):
            raise TypeError(f"Cannot descend into non-dict node at {part!r} of {path!r}")
        current = node
    current[parts[-1]] = value


def row_to_document(
    data: dict[str, str],
    mappings: list[ColumnMapping],
    values: list[str] | None = None,
) -> dict[str, Any]:
    """Build the entity document for one row.

    ``values`` is the row by position; mappings with a ``source_index`` read
    from it, others read ``data`` by header.

    Blank cells fall back to the mapping's default value; optional fields
    that still have no usable value are left out of the document.
    """
    doc: dict[str, Any] = {}
    for mapping in mappings:
        if not mapping.is_mapped:
            continue
        raw = mapping.value_in(data, values or [])
        if not raw.strip() and mapping.default_value:
            raw = mapping.default_value
        if not raw.strip():
            continue

        value = coerce_value(transform_value(raw, mapping.transform), mapping.data_type)
        if value is None and not mapping.required:
            continue
        set_nested_value(doc, mapping.target_field, value)
    return doc
