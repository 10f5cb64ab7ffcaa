"""Human-readable trace strings for logs and the CLI.

Nothing here affects protocol behaviour; callers only build these strings when
debug output is wanted.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import ntplib

from reftime.model import Available, Failed, RefTimeState, Syncing, Uninitialized, ms_to_datetime

if TYPE_CHECKING:
    from reftime.ref_time import RefTime
    from reftime.sntp.packet import NtpPacket


def to_human_readable(duration: timedelta) -> str:
    """Format with the coarsest unit that keeps the value non-zero: ms, s, m or h."""
    sign = "-" if duration < timedelta(0) else ""
    magnitude = abs(duration)
    if magnitude < timedelta(seconds=1):
        return f"{sign}{magnitude // timedelta(milliseconds=1)}ms"
    if magnitude < timedelta(minutes=1):
        return f"{sign}{magnitude // timedelta(seconds=1)}s"
    if magnitude < timedelta(hours=1):
        return f"{sign}{magnitude // timedelta(minutes=1)}m"
    return f"{sign}{magnitude // timedelta(hours=1)}h"


def describe_state(state: RefTimeState) -> str:
    match state:
        case Uninitialized():
            return "Not initialized"
        case Syncing(progress=progress):
            return f"Syncing ({int(progress * 100)}%)"
        case Available(clock_offset=offset):
            return f"Synced (offset: {to_human_readable(offset)})"
        case Failed(error=error):
            return f"Sync failed: {error}"
    raise TypeError(f"Unknown state: {state!r}")


def describe_packet(packet: NtpPacket) -> str:
    """One-line summary of a validated server response."""
    parts = [
        f"leap={ntplib.leap_to_text(packet.leap_indicator)}",
        f"version={packet.version}",
        f"mode={ntplib.mode_to_text(packet.mode)}",
        f"stratum={ntplib.stratum_to_text(packet.stratum)}",
        f"ref_id={ntplib.ref_id_to_text(packet.reference_id, packet.stratum)}",
        f"root_delay={packet.root_delay_s * 1000:.3f}ms",
        f"root_dispersion={packet.root_dispersion_s * 1000:.3f}ms",
        f"receive={ms_to_datetime(packet.receive_ms).isoformat()}",
        f"transmit={ms_to_datetime(packet.transmit_ms).isoformat()}",
    ]
    return ", ".join(parts)


def debug_info(ref_time: RefTime) -> str:
    """Multi-line dump of a RefTime instance's state, settings and anchor."""
    keeper = ref_time.time_keeper
    lines = [
        "=== RefTime Debug Info ===",
        f"State: {describe_state(ref_time.state)}",
        f"Settings: {ref_time.settings}",
        f"Has synced: {keeper.is_valid()}",
    ]
    anchor = keeper.anchor
    if anchor is not None:
        remaining = keeper.remaining_validity() or timedelta(0)
        lines += [
            f"Last sync (network time): {anchor.network_time.isoformat()}",
            f"Clock offset: {to_human_readable(anchor.clock_offset)}",
            f"Accuracy: {to_human_readable(anchor.accuracy)}",
            f"Cache remaining: {to_human_readable(remaining)}",
        ]
    lines.append("=== End Debug Info ===")
    return "\n".join(lines)
