"""Import job state machine.

uploading -> mapping -> validating -> importing -> completed | failed
completed | failed -> rolled_back
importing -> rolled_back   (a run interrupted before it could record failure)

Every status change goes through ``transition``; anything not in the table
raises ``InvalidTransitionError``.
"""

from __future__ import annotations

import logging

from ferry.core.exceptions import InvalidTransitionError
from ferry.models.job import ImportJob, ImportStatus, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ImportStatus, frozenset[ImportStatus]] = {
    ImportStatus.UPLOADING: frozenset({ImportStatus.MAPPING}),
    ImportStatus.MAPPING: frozenset({ImportStatus.VALIDATING}),
    ImportStatus.VALIDATING: frozenset({ImportStatus.IMPORTING}),
    ImportStatus.IMPORTING: frozenset({
        ImportStatus.COMPLETED, ImportStatus.FAILED, ImportStatus.ROLLED_BACK,
    }),
    ImportStatus.COMPLETED: frozenset({ImportStatus.ROLLED_BACK}),
    ImportStatus.FAILED: frozenset({ImportStatus.ROLLED_BACK}),
    ImportStatus.ROLLED_BACK: frozenset(),
}

TERMINAL_STATUSES = frozenset({
    ImportStatus.COMPLETED, ImportStatus.FAILED, ImportStatus.ROLLED_BACK,
})

# Statuses in which no entity has been written yet.
PRE_IMPORT_STATUSES = frozenset({
    ImportStatus.UPLOADING, ImportStatus.MAPPING, ImportStatus.VALIDATING,
})


def can_transition(current: ImportStatus, requested: ImportStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def transition(job: ImportJob, requested: ImportStatus) -> None:
    """Move ``job`` to ``requested`` and stamp the lifecycle timestamps."""
    current = job.status
    if not can_transition(current, requested):
        raise InvalidTransitionError(current.value, requested.value)

    job.status = requested
    now = utcnow()
    if requested == ImportStatus.IMPORTING:
        job.started_at = now
    elif requested in TERMINAL_STATUSES:
        job.completed_at = now
    job.updated_at = now
    logger.info("Import job %s: %s -> %s", job.id, current.value, requested.value)
