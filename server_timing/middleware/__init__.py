"""
Middleware modules for Server-Timing.

Provides:
- ServerTimingMiddleware: attaches a TimingSession to each request and
  writes the Server-Timing header before the response starts
- ResponseStart: adapter over the ASGI response start message
"""

from .timing import ServerTimingMiddleware, current_server_timing, server_timing_ctx
from .response import ResponseStart

__all__ = [
    "ServerTimingMiddleware",
    "current_server_timing",
    "server_timing_ctx",
    "ResponseStart",
]
