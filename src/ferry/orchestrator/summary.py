"""Roll-up of recent import jobs for dashboards."""

from __future__ import annotations

from ferry.core.protocols import IJobStore
from ferry.models.job import ImportJob, ImportStatus, ImportSummary


def summarize_jobs(jobs: list[ImportJob]) -> ImportSummary:
    return ImportSummary(
        total_jobs=len(jobs),
        completed_jobs=sum(1 for j in jobs if j.status == ImportStatus.COMPLETED),
        failed_jobs=sum(1 for j in jobs if j.status == ImportStatus.FAILED),
        total_records_imported=sum(j.imported_rows for j in jobs),
        recent_jobs=jobs,
    )


def import_summary(job_store: IJobStore, limit: int = 10) -> ImportSummary:
    return summarize_jobs(job_store.list_recent(limit))
