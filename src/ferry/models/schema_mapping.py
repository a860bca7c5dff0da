"""Column mapping models: which spreadsheet column feeds which target field."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ferry.models.field import DataType, Transform


class ColumnMapping(BaseModel):
    """Mapping from a source column to a catalog field.

    An empty ``target_field`` means the column is left unmapped and ignored.
    ``source_index`` is the column's position in the upload, so columns that
    share a header name are still told apart.
    """

    source_column: str
    source_index: Optional[int] = None
    target_field: str = ""
    data_type: DataType = DataType.STRING
    required: bool = False
    transform: Optional[Transform] = None
    enum_values: Optional[list[str]] = None
    default_value: Optional[str] = None
    confidence: float = 0.0

    @property
    def is_mapped(self) -> bool:
        return bool(self.target_field)

    def value_in(self, cells: dict[str, str], values: list[str]) -> str:
        """Read this column from a row, by position when known, else by header."""
        if self.source_index is not None and 0 <= self.source_index < len(values):
            return values[self.source_index]
        return cells.get(self.source_column, "")


class MappingValidation(BaseModel):
    """Outcome of checking a full mapping set against its target."""

    ok: bool = True
    reasons: list[str] = Field(default_factory=list)
