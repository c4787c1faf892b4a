"""
ASGI response adapter.

Wraps an ``http.response.start`` message so a TimingSession can add
headers to it before it is passed on to the server.
"""

from starlette.datastructures import MutableHeaders
from starlette.types import Message


class ResponseStart:
    """Pending response headers of one ASGI response."""

    def __init__(self, message: Message, headers_sent: bool = False):
        self.message = message
        self.headers = MutableHeaders(scope=message)
        self.headers_sent = headers_sent
