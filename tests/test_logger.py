"""Tests for the shared logger setup."""

import logging

from fairway.utils.logger import get_logger, set_log_level


def test_set_log_level_reaches_existing_and_later_loggers():
    existing = get_logger("fairway.tests.existing")
    web = get_logger("web.backend.app.tests")
    try:
        set_log_level("DEBUG")
        later = get_logger("fairway.tests.created_later")

        assert existing.level == logging.DEBUG
        assert web.level == logging.DEBUG
        assert later.level == logging.DEBUG
    finally:
        set_log_level(logging.INFO)
    assert later.level == logging.INFO


def test_explicit_level_wins_at_creation():
    logger = get_logger("fairway.tests.explicit", level=logging.WARNING)
    assert logger.level == logging.WARNING
    assert len(get_logger("fairway.tests.explicit").handlers) == 1
