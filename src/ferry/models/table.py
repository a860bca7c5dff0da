"""Parsed and validated table shapes."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ferry.models.issues import ValidationIssue, has_errors


class RawRow(BaseModel):
    """One data line of the upload, cells keyed by header.

    ``values`` keeps every cell by position, so a column whose header repeats
    an earlier one is still reachable through ``cell_at``.
    """

    row_number: int  # 1-based, header excluded
    cells: dict[str, str] = Field(default_factory=dict)
    values: list[str] = Field(default_factory=list)
    column_count_mismatch: bool = False

    def get(self, column: str, default: str = "") -> str:
        return self.cells.get(column, default)

    def cell_at(self, index: int) -> str:
        if 0 <= index < len(self.values):
            return self.values[index]
        return ""


class ParsedTable(BaseModel):
    """Parser output: headers, rows and structural diagnostics."""

    headers: list[str] = Field(default_factory=list)
    rows: list[RawRow] = Field(default_factory=list)
    delimiter: str = ","
    issues: list[ValidationIssue] = Field(default_factory=list)
    fatal: bool = False

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def issues_for_row(self, row_number: int) -> list[ValidationIssue]:
        return [i for i in self.issues if i.row == row_number]


class ValidatedRow(BaseModel):
    """A row after type validation against the column mappings."""

    row_number: int
    cells: dict[str, str] = Field(default_factory=dict)
    values: list[str] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not has_errors(self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(not issue.is_error for issue in self.issues)
