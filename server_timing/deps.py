"""
FastAPI Dependencies

Provides dependency injection for the per-request TimingSession.

Usage:
    @app.get("/users")
    async def users(timing: TimingSession = Depends(get_server_timing)):
        with timing.measure("db", "loading users"):
            ...
"""

from fastapi import Request

from server_timing.config import settings
from server_timing.core.session import TimingSession
from server_timing.middleware.timing import current_server_timing


def get_server_timing(request: Request) -> TimingSession:
    """
    Get the TimingSession attached by ServerTimingMiddleware.

    Looks at request.state first, then at the session of the current context
    (covers middleware mounted with a custom state_key).

    Raises:
        RuntimeError: ServerTimingMiddleware is not installed
    """
    session = getattr(request.state, settings.SERVER_TIMING_STATE_KEY, None) or current_server_timing()
    if session is None:
        raise RuntimeError("ServerTimingMiddleware is not installed")
    return session
