"""Value types shared by the synchronization engine and its observers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

from reftime.errors import RefTimeError

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def ms_to_datetime(epoch_ms: int) -> datetime:
    """Convert Unix epoch milliseconds to an aware UTC datetime (exact, no float rounding)."""
    return UNIX_EPOCH + timedelta(milliseconds=epoch_ms)


def datetime_to_ms(instant: datetime) -> int:
    """Convert an aware datetime to Unix epoch milliseconds, truncating sub-millisecond parts."""
    return (instant - UNIX_EPOCH) // _ONE_MS


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one successful server exchange."""

    network_time: datetime
    """Corrected network time at the moment the response arrived (T3 + offset)."""

    clock_offset: timedelta
    """Server clock minus local clock (positive = local clock behind)."""

    round_trip_delay: timedelta
    """Network transit time of the exchange. May be negative under clock skew."""

    accuracy: timedelta
    """Half the round-trip delay."""

    server: str
    """Host name of the server that answered."""


# ---------------------------------------------------------------------------
# Sync state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Uninitialized:
    """No sync has run yet, or the last one was cancelled."""


@dataclass(frozen=True)
class Syncing:
    """A sync is in flight."""

    progress: float = 0.0
    """Fraction of server attempts started, 0.0-1.0."""


@dataclass(frozen=True)
class Available:
    """The last sync succeeded and the anchor was refreshed."""

    clock_offset: timedelta
    last_sync_time: datetime
    accuracy: timedelta


@dataclass(frozen=True)
class Failed:
    """The last sync attempt exhausted every server."""

    error: RefTimeError


RefTimeState = Union[Uninitialized, Syncing, Available, Failed]
SyncOutcome = Union[Available, Failed]
