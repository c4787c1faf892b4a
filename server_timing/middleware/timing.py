"""
Server-Timing middleware.

Creates a TimingSession for every HTTP request and writes its metrics to the
Server-Timing header right before the response headers are sent, so they
show up in the browser DevTools Network tab under "Timing".

Usage:
    app.add_middleware(ServerTimingMiddleware)

    @app.get("/")
    async def index(request: Request):
        request.state.server_timing.start("db", "fetching data")
        data = await load()
        request.state.server_timing.stop("db")
        return data
"""

import logging
from contextvars import ContextVar
from typing import Optional

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from server_timing.config import settings
from server_timing.core.session import TimingSession
from server_timing.middleware.response import ResponseStart

logger = logging.getLogger(__name__)

# Session of the request being processed, isolated per request
server_timing_ctx: ContextVar[Optional[TimingSession]] = ContextVar("server_timing", default=None)


def current_server_timing() -> Optional[TimingSession]:
    """Get the TimingSession of the current request, if any."""
    return server_timing_ctx.get()


class ServerTimingMiddleware:
    """
    Attach a TimingSession to each request and emit it as Server-Timing.

    With send_headers=False the session is still created and usable, but
    nothing is written to the response.
    """

    def __init__(
        self,
        app: ASGIApp,
        send_headers: Optional[bool] = None,
        state_key: Optional[str] = None,
    ) -> None:
        self.app = app
        self.send_headers = settings.SERVER_TIMING_SEND_HEADERS if send_headers is None else send_headers
        self.state_key = state_key or settings.SERVER_TIMING_STATE_KEY
        if not self.send_headers:
            logger.warning("Server-Timing headers disabled, metrics are collected but not sent")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        user_agent = Headers(scope=scope).get("user-agent", "")
        session = TimingSession(user_agent)
        scope.setdefault("state", {})[self.state_key] = session
        logger.debug("Server-Timing session created (legacy=%s)", session.legacy)

        if not self.send_headers:
            token = server_timing_ctx.set(session)
            try:
                await self.app(scope, receive, send)
            finally:
                server_timing_ctx.reset(token)
            return

        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                # A second response start means the headers are already out
                response = ResponseStart(message, headers_sent=started)
                session.add_headers(response)
                started = True
                await send(response.message)
                return
            await send(message)

        token = server_timing_ctx.set(session)
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            server_timing_ctx.reset(token)
