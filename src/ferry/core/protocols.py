"""Protocol interfaces for Ferry's external collaborators.

The pipeline never touches storage directly: entities go through an
``IEntityRepository`` and job state through an ``IJobStore``. Structural
typing: implementations need no inheritance and isinstance() checks work.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ferry.core.types import JobId, JsonDict, RecordId

if TYPE_CHECKING:
    from ferry.models.job import ImportJob


# ---------------------------------------------------------------------------
# Entity Repository
# ---------------------------------------------------------------------------

@runtime_checkable
class IEntityRepository(Protocol):
    """Durable entity store, narrowed to what an import needs."""

    def create(self, target: str, fields: JsonDict) -> RecordId: ...

    def delete(self, target: str, record_id: RecordId) -> None: ...


# ---------------------------------------------------------------------------
# Job Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IJobStore(Protocol):
    """Where import job state lives between pipeline steps."""

    def save(self, job: ImportJob) -> None: ...

    def get(self, job_id: JobId) -> ImportJob: ...

    def list_recent(self, limit: int = 10) -> list[ImportJob]: ...

    def delete(self, job_id: JobId) -> None: ...
