"""Import job, rollback and summary models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from ferry.models.issues import ValidationIssue
from ferry.models.schema_mapping import ColumnMapping


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImportTarget(StrEnum):
    CLIENTS = "clients"
    PROJECTS = "projects"
    CONTACTS = "contacts"
    COMMUNICATION_LOGS = "communication_logs"


class ImportStatus(StrEnum):
    UPLOADING = "uploading"
    MAPPING = "mapping"
    VALIDATING = "validating"
    IMPORTING = "importing"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class ImportJob(BaseModel):
    """Durable record of one import, from upload to completion or rollback.

    ``created_record_ids`` lists every entity actually persisted, in creation
    order, and is the only input rollback needs.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    target: ImportTarget
    org_id: str = ""
    user_id: str = ""
    file_name: str = ""
    file_size: int = 0

    status: ImportStatus = ImportStatus.UPLOADING
    mappings: list[ColumnMapping] = Field(default_factory=list)

    total_rows: int = 0
    valid_rows: int = 0
    imported_rows: int = 0
    skipped_rows: int = 0
    issues: list[ValidationIssue] = Field(default_factory=list)

    created_record_ids: list[str] = Field(default_factory=list)
    failed_record_ids: list[str] = Field(default_factory=list)
    error_message: str = ""

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def touch(self) -> None:
        self.updated_at = utcnow()


class RollbackResult(BaseModel):
    """What a rollback managed to delete, and what needs manual cleanup."""

    job_id: str
    deleted_ids: list[str] = Field(default_factory=list)
    failed_ids: list[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_ids


class ImportSummary(BaseModel):
    """Dashboard roll-up over recent jobs."""

    total_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    total_records_imported: int = 0
    recent_jobs: list[ImportJob] = Field(default_factory=list)
