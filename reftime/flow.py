"""Observable channels for sync state and time updates.

Two flavours share one delivery mechanism:

  - **StateFlow**: always holds a value; new subscribers get the latest value
    first, then later changes. Equal consecutive values are not re-emitted.
  - **EventFlow**: no current value; only strictly increasing values are
    published, anything else is dropped.

Subscribers either register a synchronous listener or iterate a
:class:`Subscription` with ``async for``. Subscriptions buffer a bounded number
of values and drop the oldest on overflow, so a slow consumer never blocks the
producer and never sees values out of order. Values may be published from any
thread; each subscription hands them to the event loop that consumes it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from typing import Callable, Generic, Optional, TypeVar

from reftime.constants import DEFAULT_SUBSCRIBER_BUFFER

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Subscription(Generic[T]):
    """Async iterator over published values with a drop-oldest buffer.

    The subscription is bound to the event loop that consumes it. Values
    published from any other thread are handed to that loop with
    ``call_soon_threadsafe`` so a waiting consumer is woken promptly.
    """

    def __init__(self, owner: "_Broadcast[T]", buffer_size: int) -> None:
        self._owner = owner
        self._buffer: deque[T] = deque(maxlen=max(1, buffer_size))
        self._ready = asyncio.Event()
        self._closed = False
        self._loop = _running_loop()

    def _in_consumer_loop(self, callback: Callable[..., None], *args) -> None:
        loop = self._loop
        if loop is None or loop.is_closed() or _running_loop() is loop:
            callback(*args)
            return
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop closed in the meantime; nobody is waiting any more
            callback(*args)

    def _append(self, value: T) -> None:
        self._buffer.append(value)
        self._ready.set()

    def _push(self, value: T) -> None:
        self._in_consumer_loop(self._append, value)

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> list[T]:
        """Buffered values not yet consumed, oldest first."""
        return list(self._buffer)

    def get_nowait(self) -> Optional[T]:
        """Pop the oldest buffered value, or None if the buffer is empty."""
        return self._buffer.popleft() if self._buffer else None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._owner._unsubscribe(self)
        self._in_consumer_loop(self._ready.set)

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        self._loop = asyncio.get_running_loop()
        while not self._buffer:
            if self._closed:
                raise StopAsyncIteration
            self._ready.clear()
            await self._ready.wait()
        return self._buffer.popleft()

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class _Broadcast(Generic[T]):
    """Fan-out to listeners and subscriptions, serialised by a re-entrant lock."""

    def __init__(self, buffer_size: int = DEFAULT_SUBSCRIBER_BUFFER) -> None:
        self._buffer_size = buffer_size
        self._lock = threading.RLock()
        self._subscriptions: list[Subscription[T]] = []
        self._listeners: list[Callable[[T], None]] = []

    def _new_subscription(self, buffer_size: Optional[int]) -> Subscription[T]:
        subscription: Subscription[T] = Subscription(self, buffer_size or self._buffer_size)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def remove_listener(self, callback: Callable[[T], None]) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _notify(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception as e:
            logger.error(f"Listener {callback!r} failed: {e}", exc_info=True)

    def _deliver(self, value: T) -> None:
        for subscription in list(self._subscriptions):
            subscription._push(value)
        for callback in list(self._listeners):
            self._notify(callback, value)


class StateFlow(_Broadcast[T]):
    """Latest-value channel with replay of the current value to new observers."""

    def __init__(self, initial: T, buffer_size: int = DEFAULT_SUBSCRIBER_BUFFER) -> None:
        super().__init__(buffer_size)
        self._value = initial

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def emit(self, value: T) -> bool:
        """Publish ``value``. Returns False if it equals the current value."""
        with self._lock:
            if value == self._value:
                return False
            self._value = value
            self._deliver(value)
            return True

    def subscribe(self, buffer_size: Optional[int] = None) -> Subscription[T]:
        """Subscription whose first item is the current value."""
        with self._lock:
            subscription = self._new_subscription(buffer_size)
            subscription._push(self._value)
            return subscription

    def add_listener(self, callback: Callable[[T], None]) -> None:
        """Register ``callback`` and call it immediately with the current value."""
        with self._lock:
            self._listeners.append(callback)
            self._notify(callback, self._value)


class EventFlow(_Broadcast[T]):
    """Event channel that only carries strictly increasing values."""

    def __init__(self, buffer_size: int = DEFAULT_SUBSCRIBER_BUFFER) -> None:
        super().__init__(buffer_size)
        self._latest: Optional[T] = None

    @property
    def latest(self) -> Optional[T]:
        with self._lock:
            return self._latest

    def emit(self, value: T) -> bool:
        """Publish ``value`` if it is greater than the last published one."""
        with self._lock:
            if self._latest is not None and not value > self._latest:
                logger.debug(f"Dropping non-increasing event {value!r} (latest {self._latest!r})")
                return False
            self._latest = value
            self._deliver(value)
            return True

    def subscribe(self, buffer_size: Optional[int] = None) -> Subscription[T]:
        with self._lock:
            return self._new_subscription(buffer_size)

    def add_listener(self, callback: Callable[[T], None]) -> None:
        with self._lock:
            self._listeners.append(callback)
