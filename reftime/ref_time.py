"""Sync orchestrator: the RefTime entry point."""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from reftime.debug import describe_state, to_human_readable
from reftime.errors import AllServersFailed, InvalidResponse, NotSynced, RefTimeError, SyncCancelled
from reftime.flow import EventFlow, StateFlow, Subscription
from reftime.model import (
    Available,
    Failed,
    RefTimeState,
    SyncOutcome,
    SyncResult,
    Syncing,
    Uninitialized,
    datetime_to_ms,
)
from reftime.settings import RefTimeSettings
from reftime.sntp.client import SntpClient
from reftime.time_keeper import TimeKeeper

logger = logging.getLogger(__name__)


def system_now() -> datetime:
    return datetime.now(timezone.utc)


def _cancel_task(task: asyncio.Task) -> None:
    """Cancel ``task`` from any thread."""
    loop = task.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        task.cancel()
    else:
        loop.call_soon_threadsafe(task.cancel)


class RefTime:
    """
    Network-corrected wall-clock time.

    ``sync()`` walks the configured server list in order until one answers,
    stores the result in the :class:`TimeKeeper` and publishes progress on
    :attr:`state_flow`. Time reads (``now()`` and friends) only consult the
    cached anchor and never touch the network.

    At most one sync runs at a time. Every attempt carries a generation number;
    state and anchor writes from an attempt that has since been cancelled or
    superseded are discarded.
    """

    def __init__(
        self,
        settings: Optional[RefTimeSettings] = None,
        client: Optional[SntpClient] = None,
        time_keeper: Optional[TimeKeeper] = None,
        system_clock: Callable[[], datetime] = system_now,
    ):
        """
        Initialize RefTime.

        Args:
            settings: Server list, timeouts and cache policy (default: RefTimeSettings())
            client: SNTP client (default: UDP client on settings.ntp_port)
            time_keeper: Anchor cache (default: one using settings.cache_valid_for)
            system_clock: Fallback wall clock used by now_safe()
        """
        self.settings = settings if settings is not None else RefTimeSettings()
        self.client = client if client is not None else SntpClient(port=self.settings.ntp_port, debug=self.settings.debug)
        self.time_keeper = (
            time_keeper if time_keeper is not None else TimeKeeper(cache_valid_for=self.settings.cache_valid_for)
        )
        self._system_clock = system_clock

        self._state: StateFlow[RefTimeState] = StateFlow(Uninitialized())
        self._time_updates: EventFlow[datetime] = EventFlow()

        # Guards _generation, _sync_task and every publish
        self._lock = threading.RLock()
        self._generation = 0
        self._sync_task: Optional[asyncio.Task] = None
        self._last_result: Optional[SyncResult] = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> RefTimeState:
        return self._state.value

    @property
    def state_flow(self) -> StateFlow[RefTimeState]:
        return self._state

    @property
    def time_updates(self) -> EventFlow[datetime]:
        return self._time_updates

    @property
    def last_result(self) -> Optional[SyncResult]:
        """Full result of the last successful exchange (server, delay, ...)."""
        return self._last_result

    def subscribe_state(self, buffer_size: Optional[int] = None) -> Subscription[RefTimeState]:
        return self._state.subscribe(buffer_size)

    def subscribe_time_updates(self, buffer_size: Optional[int] = None) -> Subscription[datetime]:
        return self._time_updates.subscribe(buffer_size)

    # ------------------------------------------------------------------
    # Time reads
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        """
        Current network time.

        Raises:
            NotSynced: if there is no valid anchor.
        """
        current = self.now_or_none()
        if current is None:
            raise NotSynced()
        return current

    def now_or_none(self) -> Optional[datetime]:
        return self.time_keeper.current_time()

    def now_safe(self) -> datetime:
        """Network time if synced, otherwise the local system clock."""
        current = self.now_or_none()
        return current if current is not None else self._system_clock()

    def now_millis(self) -> Optional[int]:
        current = self.now_or_none()
        return datetime_to_ms(current) if current is not None else None

    def duration_since(self, since: datetime) -> Optional[timedelta]:
        current = self.now_or_none()
        return current - since if current is not None else None

    def has_synced(self) -> bool:
        return self.time_keeper.is_valid()

    def get_clock_offset(self) -> Optional[timedelta]:
        return self.time_keeper.clock_offset() if self.has_synced() else None

    def get_accuracy(self) -> Optional[timedelta]:
        return self.time_keeper.accuracy() if self.has_synced() else None

    def cache_remaining(self) -> Optional[timedelta]:
        return self.time_keeper.remaining_validity()

    # ------------------------------------------------------------------
    # Sync control
    # ------------------------------------------------------------------

    async def sync(self) -> SyncOutcome:
        """
        Synchronize against the configured servers.

        Cancels any sync already in flight. Never raises for network failures.

        Returns:
            ``Available`` on success, ``Failed(AllServersFailed)`` when every
            server failed, ``Failed(InvalidResponse)`` when no servers are
            configured, or ``Failed(SyncCancelled)`` (not published) when this
            call was superseded or cancelled via :meth:`cancel`.
        """
        with self._lock:
            previous = self._sync_task
            self._generation += 1
            generation = self._generation
            task = asyncio.create_task(self._perform_sync(generation), name=f"reftime-sync-{generation}")
            self._sync_task = task
        if previous is not None and not previous.done():
            _cancel_task(previous)

        try:
            outcome = await task
        except asyncio.CancelledError:
            caller = asyncio.current_task()
            if self._is_current(generation) or (caller is not None and caller.cancelling()):
                # The caller itself was cancelled; leave state as last emitted.
                raise
            return Failed(SyncCancelled())
        finally:
            with self._lock:
                if self._sync_task is task:
                    self._sync_task = None

        if not self._is_current(generation):
            return Failed(SyncCancelled())
        return outcome

    def cancel(self) -> None:
        """Cancel the in-flight sync (if any) and reset state to Uninitialized."""
        with self._lock:
            self._generation += 1
            task = self._sync_task
            self._sync_task = None
            self._state.emit(Uninitialized())
        if task is not None and not task.done():
            _cancel_task(task)
            logger.info("Time sync cancelled")

    def close(self) -> None:
        """Cancel any sync and drop the cached anchor."""
        self.cancel()
        self.time_keeper.clear()
        self._last_result = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _publish(self, generation: int, state: RefTimeState) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._state.emit(state)
            return True

    def _commit(self, generation: int, result: SyncResult) -> Optional[Available]:
        """Save ``result`` and publish it, unless the attempt has been superseded."""
        available = Available(
            clock_offset=result.clock_offset,
            last_sync_time=result.network_time,
            accuracy=result.accuracy,
        )
        with self._lock:
            if generation != self._generation:
                return None
            self.time_keeper.save(result)
            self._last_result = result
            self._state.emit(available)
            self._time_updates.emit(result.network_time)
        return available

    async def _attempt(self, server: str) -> SyncResult:
        result = await self.client.request_time(server, self.settings.connection_timeout)
        if self.settings.reject_negative_delay and result.round_trip_delay < timedelta(0):
            raise InvalidResponse(server, "negative round-trip delay")
        return result

    async def _perform_sync(self, generation: int) -> SyncOutcome:
        settings = self.settings
        self._publish(generation, Syncing(0.0))

        servers = list(settings.ntp_hosts)
        if not servers:
            failed = Failed(InvalidResponse("none", "no servers configured"))
            logger.error("Time sync impossible: no NTP servers configured")
            self._publish(generation, failed)
            return failed

        passes = settings.max_retries
        total_attempts = passes * len(servers)
        errors: dict[str, RefTimeError] = {}

        for pass_index in range(passes):
            if pass_index > 0:
                delay = settings.retry_delay(pass_index)
                logger.info(f"All servers failed, retrying in {to_human_readable(delay)} (pass {pass_index + 1}/{passes})")
                await asyncio.sleep(delay.total_seconds())

            for index, server in enumerate(servers):
                self._publish(generation, Syncing((pass_index * len(servers) + index) / total_attempts))
                if settings.debug:
                    logger.info(f"RefTime: Attempting sync with server: {server}")

                try:
                    result = await self._attempt(server)
                except RefTimeError as e:
                    errors[server] = e
                    logger.warning(f"Time sync with {server} failed: {e}")
                    continue
                except Exception as e:
                    errors[server] = InvalidResponse(server, str(e) or type(e).__name__)
                    logger.error(f"Unexpected error syncing with {server}: {e}", exc_info=True)
                    continue

                available = self._commit(generation, result)
                if available is None:
                    return Failed(SyncCancelled())

                logger.info(f"Time sync OK with {server}: offset {to_human_readable(result.clock_offset)}")
                if settings.debug:
                    logger.info(f"RefTime: Network time: {result.network_time.isoformat()}")
                    logger.info(f"RefTime: Round-trip delay: {to_human_readable(result.round_trip_delay)}")
                    logger.info(f"RefTime: Accuracy estimate: {to_human_readable(result.accuracy)}")
                return available

        failed = Failed(AllServersFailed(errors))
        logger.error(f"Time sync failed: {failed.error}")
        self._publish(generation, failed)
        return failed

    def __str__(self) -> str:
        state = self.state
        match state:
            case Uninitialized():
                return "RefTime[Uninitialized]"
            case Syncing(progress=progress):
                return f"RefTime[Syncing({int(progress * 100)}%)]"
            case Available(clock_offset=offset):
                return f"RefTime[Available(offset={to_human_readable(offset)})]"
            case Failed(error=error):
                return f"RefTime[Failed({error})]"
        return f"RefTime[{describe_state(state)}]"
