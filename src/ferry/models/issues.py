"""Row/column diagnostics shared by the parser, validator and orchestrator."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class Severity(StrEnum):
    ERROR = "error"  # blocks import of the row
    WARNING = "warning"  # informational, row still imports


class ValidationIssue(BaseModel):
    """A single problem found at (row, column).

    Row 0 refers to the header line or the file as a whole.
    """

    row: int
    column: str = ""
    value: str = ""
    message: str
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


def has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.is_error for issue in issues)
