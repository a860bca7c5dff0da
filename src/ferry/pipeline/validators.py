"""Typed cell validation for mapped columns.

Each validator returns ``None`` when the value is acceptable, otherwise a
human-readable error string. Validation always sees the raw cell text;
transforms run later, at persistence time.
"""

from __future__ import annotations

import logging
import math
import re
from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Optional

from pydantic import BaseModel, Field

from ferry.models.field import DataType
from ferry.models.issues import Severity, ValidationIssue
from ferry.models.schema_mapping import ColumnMapping
from ferry.models.table import RawRow, ValidatedRow

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_SEPARATORS_RE = re.compile(r"[\s\-()+.]")
PHONE_DIGITS_RE = re.compile(r"^\d{7,15}$")
NUMBER_STRIP_RE = re.compile(r"[,$\s]")

BOOLEAN_TRUE = frozenset({"true", "yes", "1", "y"})
BOOLEAN_FALSE = frozenset({"false", "no", "0", "n"})

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m/%d/%Y %H:%M",
    "%m-%d-%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)

# Textual shapes accepted even when no format above parses them.
DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{4}-\d{2}-\d{2}"),  # ISO
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),  # MM/DD/YYYY
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"),  # DD-MM-YYYY
    re.compile(r"^[A-Za-z]+\.? \d{1,2}, \d{4}$"),  # Month DD, YYYY
    re.compile(r"^\d{1,2} [A-Za-z]+\.? \d{4}$"),  # DD Month YYYY
)


# ---------------------------------------------------------------------------
# Value parsing helpers (shared with transforms)
# ---------------------------------------------------------------------------

def parse_date(value: str) -> Optional[date]:
    """Parse a date string, trying ISO first and then common formats."""
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_number(value: str) -> Optional[float]:
    """Strip ``, $`` and whitespace and parse as a finite float.

    Digit-group underscores (``1_000``) are rejected even though ``float``
    accepts them.
    """
    cleaned = NUMBER_STRIP_RE.sub("", value)
    if not cleaned or "_" in cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_boolean(value: str) -> Optional[bool]:
    normalized = value.strip().lower()
    if normalized in BOOLEAN_TRUE:
        return True
    if normalized in BOOLEAN_FALSE:
        return False
    return None


# ---------------------------------------------------------------------------
# Per-type validators
# ---------------------------------------------------------------------------

def validate_string(value: str, mapping: ColumnMapping) -> Optional[str]:
    if mapping.required and not value.strip():
        return "Value is required"
    return None


def validate_email(value: str, mapping: ColumnMapping) -> Optional[str]:
    if not EMAIL_RE.match(value.strip()):
        return "Invalid email address"
    return None


def validate_phone(value: str, mapping: ColumnMapping) -> Optional[str]:
    digits = PHONE_SEPARATORS_RE.sub("", value)
    if not PHONE_DIGITS_RE.match(digits):
        return "Invalid phone number (expected 7-15 digits)"
    return None


def validate_date(value: str, mapping: ColumnMapping) -> Optional[str]:
    if parse_date(value) is not None:
        return None
    text = value.strip()
    if any(pattern.match(text) for pattern in DATE_PATTERNS):
        return None
    return "Unrecognized date format"


def validate_number(value: str, mapping: ColumnMapping) -> Optional[str]:
    if parse_number(value) is None:
        return "Not a valid number"
    return None


def validate_currency(value: str, mapping: ColumnMapping) -> Optional[str]:
    amount = parse_number(value)
    if amount is None:
        return "Not a valid currency amount"
    if amount < 0:
        return "Currency amount cannot be negative"
    return None


def validate_boolean(value: str, mapping: ColumnMapping) -> Optional[str]:
    if parse_boolean(value) is None:
        return "Expected one of: true, false, yes, no, 1, 0, y, n"
    return None


def validate_enum(value: str, mapping: ColumnMapping) -> Optional[str]:
    allowed = mapping.enum_values or []
    if value.strip().lower() not in {v.lower() for v in allowed}:
        return "Must be one of: " + ", ".join(allowed)
    return None


VALIDATORS: dict[DataType, Callable[[str, ColumnMapping], Optional[str]]] = {
    DataType.STRING: validate_string,
    DataType.EMAIL: validate_email,
    DataType.PHONE: validate_phone,
    DataType.DATE: validate_date,
    DataType.NUMBER: validate_number,
    DataType.CURRENCY: validate_currency,
    DataType.BOOLEAN: validate_boolean,
    DataType.ENUM: validate_enum,
}


def validate_value(value: str, mapping: ColumnMapping) -> Optional[str]:
    """Validate one cell. Blank cells only fail when the field is required."""
    if not value.strip():
        return "Value is required" if mapping.required else None
    return VALIDATORS[mapping.data_type](value, mapping)


# ---------------------------------------------------------------------------
# Row validation
# ---------------------------------------------------------------------------

def validate_rows(
    rows: list[RawRow], mappings: list[ColumnMapping],
) -> tuple[list[ValidatedRow], list[ValidationIssue]]:
    """Check every mapped cell of every row, in row order.

    Failures on required fields are errors and make the row invalid;
    failures on optional fields are warnings only.
    """
    active = [m for m in mappings if m.is_mapped]
    validated: list[ValidatedRow] = []
    issues: list[ValidationIssue] = []

    for row in sorted(rows, key=lambda r: r.row_number):
        row_issues: list[ValidationIssue] = []
        for mapping in active:
            value = mapping.value_in(row.cells, row.values)
            error = validate_value(value, mapping)
            if error is None:
                continue
            row_issues.append(ValidationIssue(
                row=row.row_number,
                column=mapping.source_column,
                value=value,
                message=error,
                severity=Severity.ERROR if mapping.required else Severity.WARNING,
            ))
        validated.append(ValidatedRow(
            row_number=row.row_number,
            cells=dict(row.cells),
            values=list(row.values),
            issues=row_issues,
        ))
        issues.extend(row_issues)

    logger.debug(
        "Validated %d rows: %d issues", len(validated), len(issues),
    )
    return validated, issues


# ---------------------------------------------------------------------------
# Duplicate detection
# ---------------------------------------------------------------------------

class DuplicateGroup(BaseModel):
    """Rows sharing the same normalized value in one column."""

    column: str
    value: str
    row_numbers: list[int] = Field(default_factory=list)


def find_duplicates(
    rows: list[RawRow], column: str, index: int | None = None,
) -> list[DuplicateGroup]:
    """Group rows by the normalized value of ``column``; blanks are ignored.

    ``index`` picks the column by position when headers repeat.
    """
    def read(row: RawRow) -> str:
        return row.cell_at(index) if index is not None else row.get(column)

    groups: dict[str, list[RawRow]] = defaultdict(list)
    for row in rows:
        key = " ".join(read(row).lower().split())
        if key:
            groups[key].append(row)

    return [
        DuplicateGroup(
            column=column,
            value=read(members[0]),
            row_numbers=[r.row_number for r in members],
        )
        for members in groups.values()
        if len(members) > 1
    ]


def duplicate_warnings(groups: list[DuplicateGroup]) -> list[ValidationIssue]:
    """One warning per duplicated row after the first in each group."""
    warnings: list[ValidationIssue] = []
    for group in groups:
        first, *rest = group.row_numbers
        for row_number in rest:
            warnings.append(ValidationIssue(
                row=row_number,
                column=group.column,
                value=group.value,
                message=f"Duplicate of row {first}",
                severity=Severity.WARNING,
            ))
    return warnings
