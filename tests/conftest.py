import pytest

from reftime.logging import REFTIME_LOGGER


@pytest.fixture
def reftime_caplog(caplog):
    """caplog wired directly to the package logger, which does not propagate to root."""
    REFTIME_LOGGER.addHandler(caplog.handler)
    yield caplog
    REFTIME_LOGGER.removeHandler(caplog.handler)
