"""NTP packet codec.

Encodes the 48-byte SNTP client request and decodes/validates server responses.
Layout (RFC 4330, all fields big-endian)::

    0      LI(2) | VN(3) | Mode(3)
    1      Stratum
    2      Poll interval (signed log2 seconds)
    3      Precision (signed log2 seconds)
    4-7    Root delay (signed 16.16 seconds)
    8-11   Root dispersion (unsigned 16.16 seconds)
    12-15  Reference identifier
    16-23  Reference timestamp
    24-31  Originate timestamp (T0 echoed back by the server)
    32-39  Receive timestamp (T1)
    40-47  Transmit timestamp (T2)
"""

from __future__ import annotations

import secrets
import struct
from dataclasses import dataclass, field
from typing import Optional

from reftime.constants import (
    MAX_TIMESTAMP_MS,
    NTP_FRACTION_SCALE,
    NTP_LEAP_UNSYNCHRONIZED,
    NTP_MAX_STRATUM,
    NTP_MODE_BROADCAST,
    NTP_MODE_CLIENT,
    NTP_MODE_SERVER,
    NTP_PACKET_SIZE,
    NTP_VERSION,
    OFFSET_1900_TO_1970,
)
from reftime.errors import InvalidResponse, MalformedPacket

_PACKET_FORMAT = "!BBbbiII8I"
_ERA_BIT = 0x8000_0000


@dataclass(frozen=True)
class NtpTimestamp:
    """64-bit NTP timestamp: seconds since 1900 plus a 32-bit binary fraction."""

    seconds: int = 0
    fraction: int = 0

    @classmethod
    def from_millis(cls, epoch_ms: int, randomize: bool = False) -> "NtpTimestamp":
        """
        Build a timestamp from Unix epoch milliseconds.

        The fraction is rounded up so that :meth:`to_millis` floors back to the
        same millisecond. With ``randomize`` the low-order byte carries random
        bits (RFC 4330 section 3 anti-spoofing) without changing the millisecond.

        Raises:
            ValueError: if ``epoch_ms`` is before 1970 or after 2100.
        """
        if not 0 <= epoch_ms < MAX_TIMESTAMP_MS:
            raise ValueError(f"Timestamp out of range: {epoch_ms}ms")
        secs, millis = divmod(epoch_ms, 1000)
        seconds = (secs + OFFSET_1900_TO_1970) % NTP_FRACTION_SCALE
        fraction = -(-millis * NTP_FRACTION_SCALE // 1000)
        if randomize:
            fraction = ((fraction + 0xFF) & ~0xFF) | secrets.randbits(8)
        return cls(seconds=seconds, fraction=fraction)

    def is_zero(self) -> bool:
        return self.seconds == 0 and self.fraction == 0

    def to_millis(self) -> int:
        """
        Convert to Unix epoch milliseconds.

        Seconds values with the high bit clear belong to era 1 (2036-02-07 and
        later).

        Raises:
            ValueError: if the result falls before 1970 or after 2100.
        """
        seconds = self.seconds
        if not seconds & _ERA_BIT:
            seconds += NTP_FRACTION_SCALE
        epoch_ms = (seconds - OFFSET_1900_TO_1970) * 1000 + (self.fraction * 1000 >> 32)
        if not 0 <= epoch_ms < MAX_TIMESTAMP_MS:
            raise ValueError(f"Timestamp out of range: {self.seconds}.{self.fraction}")
        return epoch_ms


@dataclass(frozen=True)
class NtpPacket:
    """Decoded NTP header. Transient: built per request or response, never stored."""

    leap_indicator: int = 0
    version: int = NTP_VERSION
    mode: int = NTP_MODE_CLIENT
    stratum: int = 0
    poll_interval: int = 0
    precision: int = 0
    root_delay: int = 0
    root_dispersion: int = 0
    reference_id: int = 0
    reference_timestamp: NtpTimestamp = field(default_factory=NtpTimestamp)
    originate_timestamp: NtpTimestamp = field(default_factory=NtpTimestamp)
    receive_timestamp: NtpTimestamp = field(default_factory=NtpTimestamp)
    transmit_timestamp: NtpTimestamp = field(default_factory=NtpTimestamp)

    @property
    def flags(self) -> int:
        return (self.leap_indicator & 0x03) << 6 | (self.version & 0x07) << 3 | (self.mode & 0x07)

    @property
    def root_delay_s(self) -> float:
        return self.root_delay / 65536.0

    @property
    def root_dispersion_s(self) -> float:
        return self.root_dispersion / 65536.0

    @property
    def receive_ms(self) -> int:
        return self.receive_timestamp.to_millis()

    @property
    def transmit_ms(self) -> int:
        return self.transmit_timestamp.to_millis()

    @property
    def originate_ms(self) -> Optional[int]:
        """Echoed client send time, or None if the server left it unset."""
        if self.originate_timestamp.is_zero():
            return None
        return self.originate_timestamp.to_millis()

    def to_bytes(self) -> bytes:
        return struct.pack(
            _PACKET_FORMAT,
            self.flags,
            self.stratum,
            self.poll_interval,
            self.precision,
            self.root_delay,
            self.root_dispersion,
            self.reference_id,
            self.reference_timestamp.seconds,
            self.reference_timestamp.fraction,
            self.originate_timestamp.seconds,
            self.originate_timestamp.fraction,
            self.receive_timestamp.seconds,
            self.receive_timestamp.fraction,
            self.transmit_timestamp.seconds,
            self.transmit_timestamp.fraction,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "NtpPacket":
        """Unpack the first 48 bytes of ``data`` without any validation."""
        (
            flags,
            stratum,
            poll_interval,
            precision,
            root_delay,
            root_dispersion,
            reference_id,
            ref_s,
            ref_f,
            orig_s,
            orig_f,
            recv_s,
            recv_f,
            tx_s,
            tx_f,
        ) = struct.unpack(_PACKET_FORMAT, data[:NTP_PACKET_SIZE])
        return cls(
            leap_indicator=flags >> 6 & 0x03,
            version=flags >> 3 & 0x07,
            mode=flags & 0x07,
            stratum=stratum,
            poll_interval=poll_interval,
            precision=precision,
            root_delay=root_delay,
            root_dispersion=root_dispersion,
            reference_id=reference_id,
            reference_timestamp=NtpTimestamp(ref_s, ref_f),
            originate_timestamp=NtpTimestamp(orig_s, orig_f),
            receive_timestamp=NtpTimestamp(recv_s, recv_f),
            transmit_timestamp=NtpTimestamp(tx_s, tx_f),
        )


def build_request(transmit_ms: int) -> NtpPacket:
    """Client-mode request: everything zero except the flags byte and the transmit timestamp."""
    return NtpPacket(transmit_timestamp=NtpTimestamp.from_millis(transmit_ms, randomize=True))


def encode_request(transmit_ms: int) -> bytes:
    return build_request(transmit_ms).to_bytes()


def decode_response(data: bytes, server: str = "unknown") -> NtpPacket:
    """
    Decode and sanity-check a server response.

    Args:
        data: Raw datagram payload. Bytes past the 48-byte header are ignored.
        server: Server name used in raised errors.

    Returns:
        The decoded packet.

    Raises:
        MalformedPacket: if fewer than 48 bytes were supplied.
        InvalidResponse: if mode, stratum, leap indicator or the receive/transmit
            timestamps fail validation.
    """
    if len(data) < NTP_PACKET_SIZE:
        raise MalformedPacket(server, f"NTP response too short: {len(data)} bytes")

    packet = NtpPacket.from_bytes(data)

    if packet.mode not in (NTP_MODE_SERVER, NTP_MODE_BROADCAST):
        raise InvalidResponse(server, "untrusted mode")
    if not 1 <= packet.stratum <= NTP_MAX_STRATUM:
        raise InvalidResponse(server, "untrusted stratum")
    if packet.leap_indicator == NTP_LEAP_UNSYNCHRONIZED:
        raise InvalidResponse(server, "unsynchronized server")

    for timestamp in (packet.receive_timestamp, packet.transmit_timestamp):
        if timestamp.is_zero():
            raise InvalidResponse(server, "invalid timestamp")
        try:
            timestamp.to_millis()
        except ValueError:
            raise InvalidResponse(server, "invalid timestamp")

    return packet
