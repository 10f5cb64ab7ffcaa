"""Time anchor cache: projects the last network time forward with the local monotonic clock.

A successful sync stores one immutable :class:`TimeAnchor`. Reads add the local
time elapsed since the anchor was taken to the network time it recorded, so
no network round-trip is needed until the anchor expires. Only the short-term
rate of the local clock matters; its absolute error was corrected at save time.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from reftime.constants import DEFAULT_CACHE_VALID_S
from reftime.model import SyncResult


@dataclass(frozen=True)
class TimeAnchor:
    """Network time paired with the local monotonic reading taken when it was stored.

    Immutable so it can be swapped atomically and read without further
    synchronisation.
    """

    network_time: datetime
    local_time: float
    clock_offset: timedelta
    accuracy: timedelta


class TimeKeeper:
    """Holds at most one :class:`TimeAnchor` and answers time queries from it.

    Usage::

        keeper = TimeKeeper(cache_valid_for=timedelta(hours=1))
        keeper.save(result)

        # Any thread:
        now = keeper.current_time()   # None once the anchor expires
    """

    def __init__(
        self,
        cache_valid_for: timedelta = timedelta(seconds=DEFAULT_CACHE_VALID_S),
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cache_valid_for = cache_valid_for
        self._monotonic = monotonic
        self._anchor: TimeAnchor | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, result: SyncResult) -> TimeAnchor:
        """Replace the anchor wholesale with one built from ``result``."""
        anchor = TimeAnchor(
            network_time=result.network_time,
            local_time=self._monotonic(),
            clock_offset=result.clock_offset,
            accuracy=result.accuracy,
        )
        with self._lock:
            self._anchor = anchor
        return anchor

    def clear(self) -> None:
        with self._lock:
            self._anchor = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def anchor(self) -> TimeAnchor | None:
        with self._lock:
            return self._anchor

    def _elapsed(self, anchor: TimeAnchor) -> timedelta:
        return timedelta(seconds=self._monotonic() - anchor.local_time)

    def current_time(self) -> datetime | None:
        """Projected network time, or None if there is no anchor or it has expired."""
        anchor = self.anchor
        if anchor is None:
            return None
        elapsed = self._elapsed(anchor)
        if elapsed >= self.cache_valid_for:
            return None
        return anchor.network_time + elapsed

    def is_valid(self) -> bool:
        anchor = self.anchor
        if anchor is None:
            return False
        return self._elapsed(anchor) < self.cache_valid_for

    def remaining_validity(self) -> timedelta | None:
        """Time left before the anchor expires (never negative), or None without an anchor."""
        anchor = self.anchor
        if anchor is None:
            return None
        remaining = self.cache_valid_for - self._elapsed(anchor)
        return max(remaining, timedelta(0))

    def clock_offset(self) -> timedelta | None:
        anchor = self.anchor
        return anchor.clock_offset if anchor else None

    def accuracy(self) -> timedelta | None:
        anchor = self.anchor
        return anchor.accuracy if anchor else None

    def last_sync_time(self) -> datetime | None:
        """Network time recorded by the last successful sync."""
        anchor = self.anchor
        return anchor.network_time if anchor else None
