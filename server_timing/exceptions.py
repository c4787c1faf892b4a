"""
Server-Timing exceptions.

Both errors are raised synchronously to the caller and never swallowed;
the embedding application decides how to report them.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    INVALID_NAME = "TIM_001"
    HEADERS_SENT = "TIM_002"


class ServerTimingError(Exception):
    """Base exception for the Server-Timing toolkit."""

    code: ErrorCode

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class InvalidMetricNameError(ServerTimingError, ValueError):
    """
    Metric name is not a valid HTTP token.

    Allowed: digits, letters and !#$%&'*+-.^_`|~
    """

    code = ErrorCode.INVALID_NAME

    def __init__(self, name):
        self.name = name
        super().__init__(f"Name contains forbidden symbols: {name!r}")


class HeadersAlreadySentError(ServerTimingError, RuntimeError):
    """Response headers were transmitted before Server-Timing could be added."""

    code = ErrorCode.HEADERS_SENT

    def __init__(self):
        super().__init__("Headers were already sent, can not add Server-Timing")
