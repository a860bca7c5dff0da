"""Shared test doubles: re-export memory backends."""

from __future__ import annotations

from ferry.persistence.memory_backend import MemoryEntityRepository, MemoryJobStore

__all__ = ["MemoryEntityRepository", "MemoryJobStore"]
