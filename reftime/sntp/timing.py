"""NTP offset/delay arithmetic on integer millisecond instants."""

from dataclasses import dataclass


@dataclass(frozen=True)
class NtpTiming:
    """Clock offset, delay and corrected time from one exchange, all in milliseconds."""

    clock_offset_ms: int
    round_trip_delay_ms: int
    network_time_ms: int
    accuracy_ms: int


def _half(value: int) -> int:
    """Integer halving that truncates toward zero, unlike ``//``."""
    return -(-value // 2) if value < 0 else value // 2


def calculate_timing(t0: int, t1: int, t2: int, t3: int) -> NtpTiming:
    """
    Compute the standard NTP metrics.

    Args:
        t0: Client send time (originate).
        t1: Server receive time.
        t2: Server transmit time.
        t3: Client receive time.

    Returns:
        NtpTiming. The round-trip delay is not clamped; a negative value is
        returned as-is.
    """
    clock_offset = _half((t1 - t0) + (t2 - t3))
    round_trip_delay = (t3 - t0) - (t2 - t1)
    return NtpTiming(
        clock_offset_ms=clock_offset,
        round_trip_delay_ms=round_trip_delay,
        network_time_ms=t3 + clock_offset,
        accuracy_ms=_half(round_trip_delay),
    )
