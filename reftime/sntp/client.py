"""SNTP client: one request/response exchange against one server."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Callable, Optional

from reftime.constants import NTP_PORT
from reftime.debug import describe_packet
from reftime.errors import InvalidResponse, NetworkUnavailable, ServerTimeout
from reftime.model import SyncResult, ms_to_datetime
from reftime.sntp.packet import build_request, decode_response
from reftime.sntp.timing import calculate_timing
from reftime.sntp.transport import (
    DatagramTransport,
    ResolutionFailure,
    TransportError,
    TransportTimeout,
    UdpTransport,
)

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    """Local wall clock as Unix epoch milliseconds."""
    return time.time_ns() // 1_000_000


class SntpClient:
    """
    Performs single SNTP exchanges and turns them into :class:`SyncResult` values.

    Transport failures are translated into the RefTime error taxonomy here so
    the orchestrator only ever records ``RefTimeError`` subclasses.
    """

    def __init__(
        self,
        transport: Optional[DatagramTransport] = None,
        clock: Callable[[], int] = wall_clock_ms,
        port: int = NTP_PORT,
        debug: bool = False,
    ):
        """
        Initialize SNTP client.

        Args:
            transport: Datagram transport (default: a fresh UdpTransport)
            clock: Local wall clock returning Unix epoch milliseconds
            port: Server UDP port
            debug: Log a decoded trace of every response
        """
        self.transport = transport if transport is not None else UdpTransport()
        self.port = port
        self.debug = debug
        self._clock = clock

    async def request_time(self, server: str, timeout: timedelta) -> SyncResult:
        """
        Query ``server`` once.

        Raises:
            ServerTimeout: if no answer arrived within ``timeout``.
            NetworkUnavailable: if there is no usable network path.
            InvalidResponse: if the host is unknown or the response fails validation.
        """
        t0 = self._clock()
        request = build_request(t0)

        try:
            data = await self.transport.send_and_receive(server, self.port, request.to_bytes(), timeout.total_seconds())
        except TransportTimeout as exc:
            raise ServerTimeout(server, timeout) from exc
        except ResolutionFailure as exc:
            if exc.temporary:
                raise NetworkUnavailable(server, str(exc)) from exc
            raise InvalidResponse(server, "unknown host") from exc
        except TransportError as exc:
            raise NetworkUnavailable(server, str(exc)) from exc

        t3 = self._clock()
        packet = decode_response(data, server)

        if packet.originate_timestamp != request.transmit_timestamp:
            raise InvalidResponse(server, "originate timestamp mismatch")

        if self.debug:
            logger.info(f"RefTime: response from {server}: {describe_packet(packet)}")

        timing = calculate_timing(t0, packet.receive_ms, packet.transmit_ms, t3)
        return SyncResult(
            network_time=ms_to_datetime(timing.network_time_ms),
            clock_offset=timedelta(milliseconds=timing.clock_offset_ms),
            round_trip_delay=timedelta(milliseconds=timing.round_trip_delay_ms),
            accuracy=timedelta(milliseconds=timing.accuracy_ms),
            server=server,
        )
