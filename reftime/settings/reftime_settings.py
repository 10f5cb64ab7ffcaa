from datetime import timedelta
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reftime.constants import (
    DEFAULT_BASE_RETRY_DELAY_S,
    DEFAULT_CACHE_VALID_S,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY_S,
    DEFAULT_NTP_HOSTS,
    DEFAULT_TIMEOUT_S,
    NTP_PORT,
    RELIABLE_NTP_HOSTS,
)


class RefTimeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REFTIME_",
        env_nested_delimiter="__",
    )

    # Servers are tried in this order; first success wins.
    # An empty list is accepted here and reported by sync() instead.
    ntp_hosts: List[str] = Field(default_factory=lambda: list(DEFAULT_NTP_HOSTS))
    ntp_port: int = Field(default=NTP_PORT, ge=1, le=65535)

    # Per-server deadline covering resolution, send and receive
    connection_timeout: timedelta = timedelta(seconds=DEFAULT_TIMEOUT_S)

    # Full passes over ntp_hosts, with exponential back-off between passes
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    base_retry_delay: timedelta = timedelta(seconds=DEFAULT_BASE_RETRY_DELAY_S)
    max_retry_delay: timedelta = timedelta(seconds=DEFAULT_MAX_RETRY_DELAY_S)

    cache_valid_for: timedelta = timedelta(seconds=DEFAULT_CACHE_VALID_S)

    # Trace logging only, never changes protocol behaviour
    debug: bool = False

    # Treat a negative round-trip delay as an invalid response
    reject_negative_delay: bool = False

    @field_validator("connection_timeout", "cache_valid_for")
    @classmethod
    def _must_be_positive(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("must be positive")
        return value

    @field_validator("base_retry_delay", "max_retry_delay")
    @classmethod
    def _must_not_be_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("must not be negative")
        return value

    def retry_delay(self, completed_passes: int) -> timedelta:
        """Back-off before the pass that follows ``completed_passes`` finished passes."""
        delay = self.base_retry_delay * (2 ** max(0, completed_passes - 1))
        return min(delay, self.max_retry_delay)

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    @classmethod
    def default(cls, **overrides) -> "RefTimeSettings":
        return cls(**overrides)

    @classmethod
    def fast(cls, **overrides) -> "RefTimeSettings":
        """Single server, short timeout, one pass."""
        values = dict(
            ntp_hosts=["time.google.com"],
            connection_timeout=timedelta(seconds=10),
            max_retries=1,
        )
        values.update(overrides)
        return cls(**values)

    @classmethod
    def reliable(cls, **overrides) -> "RefTimeSettings":
        """Five servers, long timeout, five passes."""
        values = dict(
            ntp_hosts=list(RELIABLE_NTP_HOSTS),
            connection_timeout=timedelta(seconds=60),
            max_retries=5,
        )
        values.update(overrides)
        return cls(**values)

    @classmethod
    def debug_preset(cls, **overrides) -> "RefTimeSettings":
        """Two servers with trace logging enabled."""
        values = dict(
            ntp_hosts=["time.google.com", "time.apple.com"],
            debug=True,
        )
        values.update(overrides)
        return cls(**values)

    def __str__(self) -> str:
        hosts = ", ".join(self.ntp_hosts[:3])
        if len(self.ntp_hosts) > 3:
            hosts += "..."
        return (
            f"RefTimeSettings(hosts={hosts}, timeout={self.connection_timeout.total_seconds():g}s, "
            f"retries={self.max_retries}, debug={self.debug})"
        )


PRESETS = {
    "default": RefTimeSettings.default,
    "fast": RefTimeSettings.fast,
    "reliable": RefTimeSettings.reliable,
    "debug": RefTimeSettings.debug_preset,
}
