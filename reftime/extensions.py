"""Convenience reads built on top of :class:`RefTime`.

Every helper returns None when no valid anchor exists instead of falling back
to the local clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Optional

from reftime.constants import CACHE_EXPIRING_SOON_S
from reftime.debug import describe_state, to_human_readable
from reftime.ref_time import RefTime


def now_iso(ref_time: RefTime) -> Optional[str]:
    current = ref_time.now_or_none()
    return current.isoformat() if current is not None else None


def now_local(ref_time: RefTime, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Network time converted to ``tz`` (system local zone when omitted)."""
    current = ref_time.now_or_none()
    return current.astimezone(tz) if current is not None else None


def is_before(ref_time: RefTime, other: datetime) -> Optional[bool]:
    current = ref_time.now_or_none()
    return current < other if current is not None else None


def is_after(ref_time: RefTime, other: datetime) -> Optional[bool]:
    current = ref_time.now_or_none()
    return current > other if current is not None else None


def is_within_range(ref_time: RefTime, start: datetime, end: datetime) -> Optional[bool]:
    """Inclusive on both ends."""
    current = ref_time.now_or_none()
    return start <= current <= end if current is not None else None


def duration_until(ref_time: RefTime, target: datetime) -> Optional[timedelta]:
    current = ref_time.now_or_none()
    return target - current if current is not None else None


def time_ago(ref_time: RefTime, duration: timedelta) -> Optional[datetime]:
    current = ref_time.now_or_none()
    return current - duration if current is not None else None


def time_from_now(ref_time: RefTime, duration: timedelta) -> Optional[datetime]:
    current = ref_time.now_or_none()
    return current + duration if current is not None else None


def is_cache_expiring_soon(ref_time: RefTime, threshold: timedelta = timedelta(seconds=CACHE_EXPIRING_SOON_S)) -> bool:
    """True when an anchor exists and less than ``threshold`` of its validity remains."""
    remaining = ref_time.cache_remaining()
    return remaining is not None and remaining < threshold


def clock_offset_formatted(ref_time: RefTime) -> str:
    offset = ref_time.get_clock_offset()
    return to_human_readable(offset) if offset is not None else "Unknown"


def accuracy_formatted(ref_time: RefTime) -> str:
    accuracy = ref_time.get_accuracy()
    return to_human_readable(accuracy) if accuracy is not None else "Unknown"


def state_description(ref_time: RefTime) -> str:
    return describe_state(ref_time.state)
