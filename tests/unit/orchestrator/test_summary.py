"""Tests for the recent-jobs roll-up."""

from __future__ import annotations

from ferry.models.job import ImportJob, ImportStatus, ImportTarget
from ferry.orchestrator.summary import import_summary, summarize_jobs
from tests.fakes import MemoryJobStore


def test_summarize_counts_by_status():
    jobs = [
        ImportJob(target=ImportTarget.CLIENTS, status=ImportStatus.COMPLETED, imported_rows=3),
        ImportJob(target=ImportTarget.PROJECTS, status=ImportStatus.FAILED, imported_rows=2),
        ImportJob(target=ImportTarget.CONTACTS, status=ImportStatus.MAPPING),
    ]
    summary = summarize_jobs(jobs)
    assert summary.total_jobs == 3
    assert summary.completed_jobs == 1
    assert summary.failed_jobs == 1
    assert summary.total_records_imported == 5


def test_import_summary_reads_job_store():
    store = MemoryJobStore()
    for _ in range(3):
        store.save(ImportJob(target=ImportTarget.CLIENTS, status=ImportStatus.COMPLETED, imported_rows=1))
    summary = import_summary(store, limit=2)
    assert summary.total_jobs == 2
    assert len(summary.recent_jobs) == 2


def test_empty_store():
    assert import_summary(MemoryJobStore()).total_jobs == 0
