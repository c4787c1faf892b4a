"""
High-resolution monotonic timestamps.

Timestamps are (seconds, nanoseconds) pairs taken from the monotonic clock,
so they are immune to wall-clock adjustments.
"""

import time
from typing import Callable, NamedTuple


class Timestamp(NamedTuple):
    """Monotonic point in time split into whole seconds and nanoseconds."""
    seconds: int
    nanoseconds: int


Clock = Callable[[], Timestamp]


def hrtime() -> Timestamp:
    """Current monotonic timestamp."""
    seconds, nanoseconds = divmod(time.monotonic_ns(), 1_000_000_000)
    return Timestamp(seconds, nanoseconds)


def to_millis(ts: Timestamp) -> int:
    """Truncate a timestamp to whole milliseconds."""
    return int(ts.seconds * 1000 + ts.nanoseconds / 1e6)


def compute_duration_ms(start: Timestamp, end: Timestamp) -> int:
    """Signed duration in milliseconds between two timestamps."""
    return round(to_millis(end) - to_millis(start))
