"""Unit tests for the NTP offset/delay arithmetic."""

import random

from reftime.sntp.timing import calculate_timing


def test_reference_exchange():
    timing = calculate_timing(t0=1000, t1=1050, t2=1060, t3=1120)
    assert timing.round_trip_delay_ms == 110
    assert timing.clock_offset_ms == -5
    assert timing.network_time_ms == 1115
    assert timing.accuracy_ms == 55


def test_symmetric_path_with_server_ahead():
    # Local clock 500ms behind, 20ms each way, 5ms server processing
    timing = calculate_timing(t0=0, t1=520, t2=525, t3=45)
    assert timing.clock_offset_ms == 500
    assert timing.round_trip_delay_ms == 40
    assert timing.network_time_ms == 545


def test_division_truncates_toward_zero():
    positive = calculate_timing(t0=0, t1=3, t2=3, t3=2)
    assert positive.clock_offset_ms == 2  # (3 + 1) / 2
    negative = calculate_timing(t0=0, t1=0, t2=0, t3=3)
    assert negative.clock_offset_ms == -1  # -3 / 2 -> -1, not -2
    assert negative.accuracy_ms == 1


def test_negative_round_trip_delay_is_not_clamped():
    timing = calculate_timing(t0=1000, t1=1000, t2=1100, t3=1050)
    assert timing.round_trip_delay_ms == -50
    assert timing.accuracy_ms == -25


def test_offset_and_delay_properties_hold_for_random_exchanges():
    rng = random.Random(1234)
    for _ in range(200):
        skew = rng.randint(-5000, 5000)
        t0 = rng.randint(1_600_000_000_000, 1_800_000_000_000)
        outbound = rng.randint(0, 300)
        processing = rng.randint(0, 50)
        inbound = rng.randint(0, 300)
        t1 = t0 + outbound + skew
        t2 = t1 + processing
        t3 = t0 + outbound + processing + inbound

        timing = calculate_timing(t0, t1, t2, t3)

        assert timing.round_trip_delay_ms == (t3 - t0) - (t2 - t1)
        assert timing.round_trip_delay_ms == outbound + inbound
        # Offset error is bounded by half the path asymmetry
        assert abs(timing.clock_offset_ms - skew) <= abs(outbound - inbound) // 2 + 1
        assert t0 + skew - 300 <= timing.network_time_ms <= t3 + skew + 300
