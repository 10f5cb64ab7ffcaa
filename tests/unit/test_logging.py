"""Unit tests for the reftime logger setup."""

import logging

import pytest

from reftime.logging import REFTIME_LOGGER, set_log_level
from reftime.logging._reftime_logger import ColoredFormatter

# ---------------------------------------------------------------------------
# ColoredFormatter
# ---------------------------------------------------------------------------


def test_colored_formatter_adds_colors():
    fmt = ColoredFormatter(fmt="%(levelname)s %(message)s")
    record = logging.LogRecord("test", logging.INFO, "", 0, "hello", (), None)
    result = fmt.format(record)
    assert "hello" in result
    assert ColoredFormatter.COLORS["INFO"] in result
    assert result.endswith(f"{ColoredFormatter.RESET} hello")


def test_colored_formatter_leaves_record_untouched():
    fmt = ColoredFormatter(fmt="%(levelname)s %(message)s")
    record = logging.LogRecord("test", logging.WARNING, "", 0, "careful", (), None)
    fmt.format(record)
    assert record.levelname == "WARNING"


def test_colored_formatter_all_levels():
    fmt = ColoredFormatter(fmt="%(levelname)s")
    for level in [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL]:
        record = logging.LogRecord("test", level, "", 0, "msg", (), None)
        result = fmt.format(record)
        assert logging.getLevelName(level) in result


def test_colored_formatter_unknown_level_uses_reset():
    fmt = ColoredFormatter(fmt="%(levelname)s")
    record = logging.LogRecord("test", 5, "", 0, "msg", (), None)
    assert fmt.format(record).startswith(ColoredFormatter.RESET)


# ---------------------------------------------------------------------------
# Package logger
# ---------------------------------------------------------------------------


def test_package_logger_has_single_colored_handler():
    assert len(REFTIME_LOGGER.handlers) == 1
    assert isinstance(REFTIME_LOGGER.handlers[0].formatter, ColoredFormatter)


def test_module_loggers_are_children_of_package_logger():
    assert logging.getLogger("reftime.ref_time").parent is REFTIME_LOGGER
    assert logging.getLogger("reftime.sntp.client").parent.name in ("reftime", "reftime.sntp")


@pytest.fixture
def restore_level():
    level = REFTIME_LOGGER.level
    yield
    REFTIME_LOGGER.setLevel(level)


def test_set_log_level(restore_level):
    set_log_level("debug")
    assert REFTIME_LOGGER.level == logging.DEBUG
    set_log_level("WARNING")
    assert REFTIME_LOGGER.level == logging.WARNING


def test_set_log_level_rejects_unknown_names(restore_level):
    with pytest.raises(ValueError):
        set_log_level("LOUD")


def test_package_logger_does_not_propagate_to_root():
    assert REFTIME_LOGGER.propagate is False
