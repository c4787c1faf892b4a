"""
Server-Timing headers for ASGI applications.

See: https://w3c.github.io/server-timing/
"""

from server_timing.core.session import Metric, TimingSession
from server_timing.exceptions import (
    ErrorCode,
    HeadersAlreadySentError,
    InvalidMetricNameError,
    ServerTimingError,
)
from server_timing.middleware import ResponseStart, ServerTimingMiddleware, current_server_timing

__version__ = "1.9.7"

__all__ = [
    "Metric",
    "TimingSession",
    "ErrorCode",
    "HeadersAlreadySentError",
    "InvalidMetricNameError",
    "ServerTimingError",
    "ResponseStart",
    "ServerTimingMiddleware",
    "current_server_timing",
]
