"""Unit tests for the human-readable trace helpers."""

from datetime import timedelta

import pytest

from reftime.debug import debug_info, describe_packet, describe_state, to_human_readable
from reftime.errors import AllServersFailed, ServerTimeout
from reftime.model import Available, Failed, Syncing, Uninitialized, ms_to_datetime
from reftime.ref_time import RefTime
from reftime.settings import RefTimeSettings
from reftime.sntp.packet import decode_response, encode_request
from reftime.time_keeper import TimeKeeper
from tests.utils import FakeMonotonic, make_result, server_reply

# ---------------------------------------------------------------------------
# to_human_readable
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "duration,expected",
    [
        (timedelta(0), "0ms"),
        (timedelta(milliseconds=5), "5ms"),
        (timedelta(milliseconds=999), "999ms"),
        (timedelta(seconds=1), "1s"),
        (timedelta(seconds=59, milliseconds=999), "59s"),
        (timedelta(minutes=1), "1m"),
        (timedelta(minutes=59, seconds=59), "59m"),
        (timedelta(hours=1), "1h"),
        (timedelta(hours=25), "25h"),
        (timedelta(milliseconds=-5), "-5ms"),
        (timedelta(seconds=-90), "-1m"),
    ],
)
def test_to_human_readable(duration, expected):
    assert to_human_readable(duration) == expected


# ---------------------------------------------------------------------------
# describe_state
# ---------------------------------------------------------------------------


def test_describe_state():
    assert describe_state(Uninitialized()) == "Not initialized"
    assert describe_state(Syncing(0.5)) == "Syncing (50%)"
    assert describe_state(Available(timedelta(milliseconds=-5), ms_to_datetime(0), timedelta(0))) == (
        "Synced (offset: -5ms)"
    )
    failed = Failed(AllServersFailed({"a": ServerTimeout("a", timedelta(seconds=1))}))
    assert describe_state(failed) == "Sync failed: All NTP servers failed: a"


def test_describe_state_rejects_unknown_values():
    with pytest.raises(TypeError):
        describe_state("Synced")


# ---------------------------------------------------------------------------
# describe_packet
# ---------------------------------------------------------------------------


def test_describe_packet():
    packet = decode_response(server_reply(encode_request(1000), 1050, 1060, stratum=2, reference_id=0xC0A80001))
    text = describe_packet(packet)
    assert "leap=no warning" in text
    assert "mode=server" in text
    assert "stratum=secondary reference" in text
    assert "ref_id=192.168.0.1" in text
    assert ms_to_datetime(1060).isoformat() in text


# ---------------------------------------------------------------------------
# debug_info
# ---------------------------------------------------------------------------


def _ref_time():
    keeper = TimeKeeper(cache_valid_for=timedelta(hours=1), monotonic=FakeMonotonic())
    return RefTime(settings=RefTimeSettings.fast(), time_keeper=keeper)


def test_debug_info_before_sync():
    text = debug_info(_ref_time())
    lines = text.splitlines()
    assert lines[0] == "=== RefTime Debug Info ==="
    assert lines[-1] == "=== End Debug Info ==="
    assert "State: Not initialized" in lines
    assert "Has synced: False" in lines
    assert "Clock offset" not in text


def test_debug_info_with_anchor():
    ref_time = _ref_time()
    ref_time.time_keeper.save(make_result(offset_ms=-5, delay_ms=110))
    text = debug_info(ref_time)
    assert "Has synced: True" in text
    assert "Clock offset: -5ms" in text
    assert "Accuracy: 55ms" in text
    assert "Cache remaining: 1h" in text
    assert "time.google.com" in text
