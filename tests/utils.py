import asyncio
from datetime import timedelta

from reftime.model import SyncResult, ms_to_datetime
from reftime.sntp.packet import NtpPacket, NtpTimestamp
from reftime.sntp.transport import DatagramTransport

HANG = object()


class FakeMonotonic:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SequenceClock:
    """Wall clock (epoch ms) that returns the given readings in order, then repeats the last."""

    def __init__(self, *readings: int):
        self.readings = list(readings)

    def __call__(self) -> int:
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]


def server_reply(request: bytes, t1_ms: int, t2_ms: int, **overrides) -> bytes:
    """Build a server-mode response to ``request`` that echoes its transmit timestamp."""
    sent = NtpPacket.from_bytes(request)
    fields = dict(
        leap_indicator=0,
        version=3,
        mode=4,
        stratum=2,
        reference_id=0xC0A80001,
        reference_timestamp=NtpTimestamp.from_millis(max(0, t1_ms - 1000)),
        originate_timestamp=sent.transmit_timestamp,
        receive_timestamp=NtpTimestamp.from_millis(t1_ms),
        transmit_timestamp=NtpTimestamp.from_millis(t2_ms),
    )
    fields.update(overrides)
    return NtpPacket(**fields).to_bytes()


def replying(t1_ms: int, t2_ms: int, **overrides):
    """Responder for FakeTransport that answers with fixed server timestamps."""
    return lambda request: server_reply(request, t1_ms, t2_ms, **overrides)


class FakeTransport(DatagramTransport):
    """
    Scripted transport keyed by host.

    Each responder is one of: an exception instance (raised), ``HANG`` (waits
    until cancelled), ``bytes`` (returned as-is) or a callable taking the
    request bytes and returning the response.
    """

    def __init__(self, responders=None):
        self.responders = dict(responders or {})
        self.calls = []
        self.started = asyncio.Event()

    async def send_and_receive(self, host, port, request, timeout):
        self.calls.append((host, port, request, timeout))
        self.started.set()
        responder = self.responders[host]
        if responder is HANG:
            await asyncio.Event().wait()
        if isinstance(responder, BaseException):
            raise responder
        if isinstance(responder, bytes):
            return responder
        return responder(request)


def make_result(network_ms: int = 1_700_000_000_000, offset_ms: int = -5, delay_ms: int = 110, server="test"):
    return SyncResult(
        network_time=ms_to_datetime(network_ms),
        clock_offset=timedelta(milliseconds=offset_ms),
        round_trip_delay=timedelta(milliseconds=delay_ms),
        accuracy=timedelta(milliseconds=delay_ms // 2),
        server=server,
    )


class TickingClock:
    """Wall clock in epoch ms that advances ``step`` on every reading."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 60):
        self.value = start
        self.step = step

    def __call__(self) -> int:
        reading = self.value
        self.value += self.step
        return reading
