"""SNTP wire codec, timing arithmetic, UDP transport and single-server client."""

from reftime.sntp.client import SntpClient
from reftime.sntp.packet import NtpPacket, NtpTimestamp, build_request, decode_response, encode_request
from reftime.sntp.timing import NtpTiming, calculate_timing
from reftime.sntp.transport import (
    DatagramTransport,
    ResolutionFailure,
    TransportError,
    TransportTimeout,
    UdpTransport,
)

__all__ = [
    "DatagramTransport",
    "NtpPacket",
    "NtpTimestamp",
    "NtpTiming",
    "ResolutionFailure",
    "SntpClient",
    "TransportError",
    "TransportTimeout",
    "UdpTransport",
    "build_request",
    "calculate_timing",
    "decode_response",
    "encode_request",
]
