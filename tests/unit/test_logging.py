"""Tests for logging setup."""

from __future__ import annotations

import logging

from ferry.core.logging import LOG_FORMAT, configure_logging


def test_configure_logging_is_idempotent():
    logger = configure_logging("DEBUG")
    configure_logging("DEBUG")
    assert logger.name == "ferry"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_level_can_be_changed():
    logger = configure_logging("WARNING")
    assert logger.level == logging.WARNING
    assert all(h.level == logging.WARNING for h in logger.handlers)
