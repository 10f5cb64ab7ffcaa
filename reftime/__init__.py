"""Network-corrected wall-clock time from NTP/SNTP servers."""

from reftime.errors import (
    AllServersFailed,
    InvalidResponse,
    MalformedPacket,
    NetworkUnavailable,
    NotSynced,
    RefTimeError,
    ServerTimeout,
    SyncCancelled,
)
from reftime.logging import REFTIME_LOGGER
from reftime.model import Available, Failed, RefTimeState, SyncResult, Syncing, Uninitialized
from reftime.ref_time import RefTime
from reftime.settings import RefTimeSettings
from reftime.time_keeper import TimeAnchor, TimeKeeper

__all__ = [
    "AllServersFailed",
    "Available",
    "Failed",
    "InvalidResponse",
    "MalformedPacket",
    "NetworkUnavailable",
    "NotSynced",
    "REFTIME_LOGGER",
    "RefTime",
    "RefTimeError",
    "RefTimeSettings",
    "RefTimeState",
    "ServerTimeout",
    "SyncCancelled",
    "SyncResult",
    "Syncing",
    "TimeAnchor",
    "TimeKeeper",
    "Uninitialized",
]
