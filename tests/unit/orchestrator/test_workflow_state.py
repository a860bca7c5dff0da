"""Tests for the import job state machine."""

from __future__ import annotations

import pytest

from ferry.core.exceptions import InvalidTransitionError
from ferry.models.job import ImportJob, ImportStatus, ImportTarget
from ferry.orchestrator.workflow_state import can_transition, transition

S = ImportStatus


class TestCanTransition:
    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (S.UPLOADING, S.MAPPING),
            (S.MAPPING, S.VALIDATING),
            (S.VALIDATING, S.IMPORTING),
            (S.IMPORTING, S.COMPLETED),
            (S.IMPORTING, S.FAILED),
            (S.COMPLETED, S.ROLLED_BACK),
            (S.FAILED, S.ROLLED_BACK),
            (S.IMPORTING, S.ROLLED_BACK),
        ],
    )
    def test_allowed(self, current, requested):
        assert can_transition(current, requested)

    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (S.UPLOADING, S.IMPORTING),
            (S.MAPPING, S.COMPLETED),
            (S.VALIDATING, S.MAPPING),
            (S.COMPLETED, S.IMPORTING),
            (S.ROLLED_BACK, S.COMPLETED),
            (S.ROLLED_BACK, S.ROLLED_BACK),
            (S.VALIDATING, S.ROLLED_BACK),
        ],
    )
    def test_rejected(self, current, requested):
        assert not can_transition(current, requested)


class TestTransition:
    def test_stamps_started_and_completed(self):
        job = ImportJob(target=ImportTarget.CLIENTS, status=S.VALIDATING)
        transition(job, S.IMPORTING)
        assert job.started_at is not None
        assert job.completed_at is None
        transition(job, S.COMPLETED)
        assert job.status == S.COMPLETED
        assert job.completed_at is not None

    def test_invalid_transition_raises_and_leaves_job(self):
        job = ImportJob(target=ImportTarget.CLIENTS)
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(job, S.COMPLETED)
        assert exc_info.value.current == "uploading"
        assert exc_info.value.requested == "completed"
        assert job.status == S.UPLOADING
