"""Type aliases used across the Ferry import pipeline."""

from __future__ import annotations

from typing import Any, Callable

JsonDict = dict[str, Any]
JobId = str
RecordId = str
FieldPath = str
ProgressCallback = Callable[[int, int], None]
