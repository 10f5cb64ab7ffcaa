"""Error taxonomy for time synchronization.

Every failure the library reports derives from :class:`RefTimeError`. Per-server
failures (:class:`NetworkUnavailable`, :class:`ServerTimeout`,
:class:`InvalidResponse`) are collected by the orchestrator and only ever reach
callers wrapped in :class:`AllServersFailed`.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Mapping, Union


class RefTimeError(Exception):
    """Base class for all RefTime errors."""


class NotSynced(RefTimeError):
    """No valid time anchor exists. Raised only by the strict ``now()`` accessor."""

    def __init__(self) -> None:
        super().__init__("RefTime has not been synced yet")


class NetworkUnavailable(RefTimeError):
    """No network path to the server (DNS temporarily failing, network unreachable)."""

    def __init__(self, server: str | None = None, reason: str | None = None) -> None:
        self.server = server
        self.reason = reason
        message = "Network is not available for time sync"
        if server:
            message += f" ({server}"
            message += f": {reason})" if reason else ")"
        super().__init__(message)


class ServerTimeout(RefTimeError):
    """The per-attempt deadline elapsed before the server answered."""

    def __init__(self, server: str, timeout: timedelta) -> None:
        self.server = server
        self.timeout = timeout
        super().__init__(f"Timeout connecting to server {server} after {timeout.total_seconds():g}s")


class InvalidResponse(RefTimeError):
    """A response arrived but failed wire-format or protocol sanity checks."""

    def __init__(self, server: str, reason: str) -> None:
        self.server = server
        self.reason = reason
        super().__init__(f"Invalid response from server {server}: {reason}")


class MalformedPacket(InvalidResponse):
    """The response buffer is too short to be an NTP packet."""


class AllServersFailed(RefTimeError):
    """Every configured server failed in the current sync attempt."""

    def __init__(self, errors: Mapping[str, RefTimeError]) -> None:
        self.errors = dict(errors)
        super().__init__(f"All NTP servers failed: {', '.join(self.errors)}")


class SyncCancelled(RefTimeError):
    """The sync call was superseded by a newer ``sync()`` or stopped by ``cancel()``."""

    def __init__(self) -> None:
        super().__init__("Time sync was cancelled")


SyncError = Union[NotSynced, NetworkUnavailable, ServerTimeout, InvalidResponse, AllServersFailed, SyncCancelled]
