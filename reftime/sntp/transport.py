"""UDP transport for SNTP exchanges.

Provides an abstract transport interface and the asyncio implementation:
  - **UdpTransport**: one datagram out, one datagram back, via
    ``loop.create_datagram_endpoint``

The transport knows nothing about NTP. It resolves, sends, waits and always
closes its socket before returning, so the caller can treat each call as a
self-contained exchange.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

_MAX_DATAGRAM_SIZE = 512


class TransportError(Exception):
    """Socket-level failure during an exchange."""

    def __init__(self, message: str, errno: int | None = None) -> None:
        super().__init__(message)
        self.errno = errno


class TransportTimeout(TransportError):
    """The deadline elapsed before a response datagram arrived."""


class ResolutionFailure(TransportError):
    """The host name could not be resolved."""

    @property
    def temporary(self) -> bool:
        """True when the resolver failed transiently (typically: no network)."""
        return self.errno == getattr(socket, "EAI_AGAIN", None)


class DatagramTransport(ABC):
    """Abstract request/response datagram transport."""

    @abstractmethod
    async def send_and_receive(self, host: str, port: int, request: bytes, timeout: float) -> bytes:
        """
        Send ``request`` to ``host:port`` and return the first datagram received.

        Args:
            host: Host name or address literal.
            port: UDP port.
            request: Payload to send.
            timeout: Hard deadline in seconds covering resolution, send and receive.

        Raises:
            TransportTimeout: if the deadline elapsed.
            ResolutionFailure: if ``host`` could not be resolved.
            TransportError: on any other socket error.
        """


class _SingleResponseProtocol(asyncio.DatagramProtocol):
    """Completes ``response`` with the first datagram (or socket error) seen."""

    def __init__(self, response: asyncio.Future) -> None:
        self._response = response

    def datagram_received(self, data: bytes, addr) -> None:
        if not self._response.done():
            self._response.set_result(data)

    def error_received(self, exc: Exception) -> None:
        if not self._response.done():
            self._response.set_exception(exc)

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None and not self._response.done():
            self._response.set_exception(exc)


class UdpTransport(DatagramTransport):
    """asyncio UDP transport. Each call opens and closes its own socket."""

    async def send_and_receive(self, host: str, port: int, request: bytes, timeout: float) -> bytes:
        try:
            return await asyncio.wait_for(self._exchange(host, port, request), timeout=timeout)
        except asyncio.TimeoutError:
            raise TransportTimeout(f"No response from {host}:{port} within {timeout:g}s")

    async def _exchange(self, host: str, port: int, request: bytes) -> bytes:
        loop = asyncio.get_running_loop()

        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except socket.gaierror as exc:
            raise ResolutionFailure(f"Could not resolve {host}: {exc}", errno=exc.errno) from exc
        if not infos:
            raise ResolutionFailure(f"Could not resolve {host}: no addresses")
        family, _, _, _, address = infos[0]

        response: asyncio.Future = loop.create_future()
        transport = None
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _SingleResponseProtocol(response),
                remote_addr=address,
                family=family,
            )
            transport.sendto(request)
            logger.debug("TX %d bytes to %s (%s)", len(request), host, address[0])
            data = await response
            logger.debug("RX %d bytes from %s", len(data), host)
            return data[:_MAX_DATAGRAM_SIZE]
        except OSError as exc:
            raise TransportError(f"Socket error talking to {host}: {exc}", errno=exc.errno) from exc
        finally:
            if transport is not None:
                transport.close()
