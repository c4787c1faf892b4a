import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from httpx import AsyncClient, ASGITransport

from server_timing.core.clock import Timestamp
from server_timing.core.session import TimingSession
from server_timing.deps import get_server_timing
from server_timing.middleware import ServerTimingMiddleware, current_server_timing
from server_timing.middleware.response import ResponseStart

MODERN_CHROME = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_6) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/72.0.3809.100 Safari/537.36"
)
OLD_CHROME = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_6) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/62.0.3809.100 Safari/537.36"
)
FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, seconds: int = 1000):
        self.nanoseconds = seconds * 1_000_000_000

    def __call__(self) -> Timestamp:
        return Timestamp(*divmod(self.nanoseconds, 1_000_000_000))

    def advance(self, ms: int) -> None:
        self.nanoseconds += ms * 1_000_000


@pytest.fixture
def clock():
    """Deterministic clock for sessions."""
    return FakeClock()


@pytest.fixture
def session(clock):
    """Session for a current-format browser."""
    return TimingSession(MODERN_CHROME, clock=clock)


@pytest.fixture
def legacy_session(clock):
    """Session for Chrome 62."""
    return TimingSession(OLD_CHROME, clock=clock)


@pytest.fixture
def response():
    """Pending ASGI response with no headers."""
    return ResponseStart({"type": "http.response.start", "status": 200, "headers": []})


def create_app(**middleware_options) -> FastAPI:
    """Small application exercising the middleware."""
    app = FastAPI()
    app.add_middleware(ServerTimingMiddleware, **middleware_options)

    @app.get("/exact")
    async def exact(timing: TimingSession = Depends(get_server_timing)):
        timing.add("db", "database", 123)
        return {"ok": True}

    @app.get("/measured")
    async def measured(timing: TimingSession = Depends(get_server_timing)):
        with timing.measure("render", "rendering"):
            pass
        return {"ok": True}

    @app.get("/upstream")
    async def upstream(timing: TimingSession = Depends(get_server_timing)):
        timing.add("db", "database", 7)
        return PlainTextResponse("ok", headers={"Server-Timing": "cdn;dur=5"})

    @app.get("/sent")
    async def sent(response: Response, timing: TimingSession = Depends(get_server_timing)):
        timing.add("db", "database", 9)
        timing.send(response, "cache", "hit", 3)
        return {"ok": True}

    @app.get("/empty")
    async def empty():
        return {"ok": True}

    @app.get("/state")
    async def state(request: Request):
        timing = request.state.server_timing
        return {
            "session": isinstance(timing, TimingSession),
            "context": current_server_timing() is timing,
            "legacy": timing.legacy,
        }

    @app.get("/invalid")
    async def invalid(timing: TimingSession = Depends(get_server_timing)):
        timing.start("bad name")
        return {"ok": True}

    return app


@pytest_asyncio.fixture
async def client():
    """Client for an app sending Server-Timing headers."""
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def silent_client():
    """Client for an app collecting metrics without sending them."""
    transport = ASGITransport(app=create_app(send_headers=False))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
