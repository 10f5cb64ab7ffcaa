"""Unit tests for SntpClient: error mapping and result construction."""

import asyncio
import errno
import logging
import socket
from datetime import timedelta

import pytest

from reftime.errors import InvalidResponse, MalformedPacket, NetworkUnavailable, ServerTimeout
from reftime.model import ms_to_datetime
from reftime.sntp.client import SntpClient
from reftime.sntp.packet import NtpPacket, NtpTimestamp
from reftime.sntp.transport import ResolutionFailure, TransportError, TransportTimeout
from tests.utils import FakeTransport, SequenceClock, replying, server_reply

TIMEOUT = timedelta(seconds=5)


def _client(responder, *clock_readings, **kwargs):
    transport = FakeTransport({"ntp.example": responder})
    clock = SequenceClock(*(clock_readings or (1000, 1120)))
    return SntpClient(transport=transport, clock=clock, **kwargs), transport


def test_reference_exchange():
    client, transport = _client(replying(1050, 1060), 1000, 1120)
    result = asyncio.run(client.request_time("ntp.example", TIMEOUT))

    assert result.server == "ntp.example"
    assert result.round_trip_delay == timedelta(milliseconds=110)
    assert result.clock_offset == timedelta(milliseconds=-5)
    assert result.network_time == ms_to_datetime(1115)
    assert result.accuracy == timedelta(milliseconds=55)


def test_request_carries_send_time_and_port():
    client, transport = _client(replying(1050, 1060), 1000, 1120, port=1123)
    asyncio.run(client.request_time("ntp.example", TIMEOUT))

    host, port, request, timeout = transport.calls[0]
    assert host == "ntp.example"
    assert port == 1123
    assert timeout == 5.0
    assert NtpPacket.from_bytes(request).transmit_ms == 1000


def test_timeout_maps_to_server_timeout():
    client, _ = _client(TransportTimeout("no answer"))
    with pytest.raises(ServerTimeout) as exc_info:
        asyncio.run(client.request_time("ntp.example", TIMEOUT))
    assert exc_info.value.server == "ntp.example"
    assert exc_info.value.timeout == TIMEOUT


def test_unknown_host_maps_to_invalid_response():
    client, _ = _client(ResolutionFailure("nope", errno=socket.EAI_NONAME))
    with pytest.raises(InvalidResponse) as exc_info:
        asyncio.run(client.request_time("ntp.example", TIMEOUT))
    assert exc_info.value.reason == "unknown host"


def test_temporary_resolution_failure_maps_to_network_unavailable():
    client, _ = _client(ResolutionFailure("try again", errno=socket.EAI_AGAIN))
    with pytest.raises(NetworkUnavailable) as exc_info:
        asyncio.run(client.request_time("ntp.example", TIMEOUT))
    assert exc_info.value.server == "ntp.example"


def test_socket_error_maps_to_network_unavailable():
    client, _ = _client(TransportError("unreachable", errno=errno.ENETUNREACH))
    with pytest.raises(NetworkUnavailable):
        asyncio.run(client.request_time("ntp.example", TIMEOUT))


def test_short_response_is_malformed():
    client, _ = _client(bytes(12))
    with pytest.raises(MalformedPacket):
        asyncio.run(client.request_time("ntp.example", TIMEOUT))


def test_originate_mismatch_is_rejected():
    def forged(request):
        return server_reply(request, 1050, 1060, originate_timestamp=NtpTimestamp.from_millis(999))

    client, _ = _client(forged)
    with pytest.raises(InvalidResponse) as exc_info:
        asyncio.run(client.request_time("ntp.example", TIMEOUT))
    assert exc_info.value.reason == "originate timestamp mismatch"


def test_validation_errors_carry_server_name():
    client, _ = _client(replying(1050, 1060, stratum=0))
    with pytest.raises(InvalidResponse) as exc_info:
        asyncio.run(client.request_time("ntp.example", TIMEOUT))
    assert exc_info.value.server == "ntp.example"
    assert exc_info.value.reason == "untrusted stratum"


def test_debug_logs_packet_trace(reftime_caplog):
    client, _ = _client(replying(1050, 1060), 1000, 1120, debug=True)
    with reftime_caplog.at_level(logging.INFO, logger="reftime"):
        asyncio.run(client.request_time("ntp.example", TIMEOUT))
    assert any("response from ntp.example" in r.getMessage() for r in reftime_caplog.records)


def test_debug_does_not_change_result():
    plain, _ = _client(replying(1050, 1060), 1000, 1120)
    traced, _ = _client(replying(1050, 1060), 1000, 1120, debug=True)
    assert asyncio.run(plain.request_time("ntp.example", TIMEOUT)) == asyncio.run(
        traced.request_time("ntp.example", TIMEOUT)
    )
