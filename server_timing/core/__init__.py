"""
Server-Timing core: per-request session, wire formats and clock.
"""

from .clock import Timestamp, hrtime, to_millis, compute_duration_ms
from .formatting import build_header, current_style, legacy_style, name_is_valid
from .session import Hook, Metric, TimingSession, uses_legacy_format

__all__ = [
    "Timestamp",
    "hrtime",
    "to_millis",
    "compute_duration_ms",
    "build_header",
    "current_style",
    "legacy_style",
    "name_is_valid",
    "Hook",
    "Metric",
    "TimingSession",
    "uses_legacy_format",
]
