"""
Per-request Server-Timing controller.

Collects named metrics while a request is handled and renders them into
Server-Timing header values right before the response headers go out.

Usage:
    session = TimingSession(request.headers.get("user-agent", ""))

    session.start("db", "query users")
    users = await load_users()
    session.stop("db")

    session.add("cache", "cache lookup", 12)
    session.add_headers(response)
"""

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, replace
from itertools import count
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from starlette.datastructures import MutableHeaders

from server_timing.core.clock import Clock, Timestamp, compute_duration_ms, hrtime, to_millis
from server_timing.core.formatting import Number, build_header, name_is_valid
from server_timing.exceptions import HeadersAlreadySentError, InvalidMetricNameError

logger = logging.getLogger(__name__)

HEADER_NAME = "server-timing"

# Chrome 64 and older only understand the draft syntax
LEGACY_CHROME_MAX_VERSION = 64
CHROME_VERSION_PATTERN = re.compile(r" Chrome/(\d+)")


@dataclass
class Metric:
    """A single named measurement."""
    started_at: Optional[Timestamp] = None
    ended_at: Optional[Timestamp] = None
    description: Optional[str] = None
    duration: Optional[Number] = None


Metrics = Dict[str, Metric]
Transform = Callable[[Metrics], Metrics]


@dataclass
class Hook:
    """Named transform applied to all metrics before rendering."""
    name: str
    transform: Transform
    index: Number
    sequence: int


class HeaderTarget(Protocol):
    """
    Response side of the request pipeline.

    Starlette responses have no headers_sent flag; a missing flag means the
    headers are still pending.
    """

    headers: MutableHeaders


def headers_sent(response: HeaderTarget) -> bool:
    """Check if a response already transmitted its headers."""
    return getattr(response, "headers_sent", False)


def uses_legacy_format(user_agent: Optional[str]) -> bool:
    """True for Chrome 64 and older, which expect the legacy syntax."""
    match = CHROME_VERSION_PATTERN.search(user_agent or "")
    if match is None:
        return False
    return int(match.group(1)) <= LEGACY_CHROME_MAX_VERSION


class TimingSession:
    """
    Server-Timing metrics for one request.

    Attributes:
        initialized_at: default start for metrics without a start mark
        metrics: metrics by name, in emission order
        hooks: registered transforms
        legacy: render fragments in the pre-Chrome 65 syntax
    """

    def __init__(self, user_agent: Optional[str] = "", clock: Clock = hrtime):
        self._clock = clock
        self._sequence = count()
        self.legacy = uses_legacy_format(user_agent)
        self.initialized_at = clock()
        self.metrics: Metrics = {}
        self.hooks: List[Hook] = []

    def _set(self, name: str, **fields) -> None:
        """Update fields of a metric, creating it if missing."""
        if not name_is_valid(name):
            raise InvalidMetricNameError(name)
        metric = self.metrics.setdefault(name, Metric())
        for field_name, value in fields.items():
            setattr(metric, field_name, value)

    def start(self, name: str, description: Optional[str] = None) -> None:
        """Mark the start of a metric."""
        fields = {"started_at": self._clock()}
        if description is not None:
            fields["description"] = description
        self._set(name, **fields)

    def stop(self, name: str, description: Optional[str] = None) -> None:
        """Mark the end of a metric."""
        fields = {"ended_at": self._clock()}
        if description is not None:
            fields["description"] = description
        self._set(name, **fields)

    def description(self, name: str, text: str) -> None:
        """Set the description of a metric."""
        self._set(name, description=text)

    def duration(self, name: str, ms: Number) -> None:
        """Set an explicit duration, ignoring start and end marks."""
        self._set(name, duration=ms)

    def add(self, name: str, description: Optional[str], duration: Number = 0) -> None:
        """Replace a metric with an externally measured duration."""
        if not name_is_valid(name):
            raise InvalidMetricNameError(name)
        self.metrics[name] = Metric(description=description, duration=duration)

    @contextmanager
    def measure(self, name: str, description: Optional[str] = None) -> Iterator[None]:
        """Mark start and end of a metric around a block."""
        self.start(name, description)
        try:
            yield
        finally:
            self.stop(name)

    def calculate_duration_smart(self, metric: Metric) -> Number:
        """
        Duration of a metric without finalizing it.

        Explicit duration wins; otherwise the absolute distance between the
        end mark (or now) and the start mark (or session start).
        """
        if metric.duration is not None:
            return metric.duration
        started_at = metric.started_at or self.initialized_at
        ended_at = metric.ended_at or self._clock()
        return abs(to_millis(ended_at) - to_millis(started_at))

    def add_hook(self, name: str, transform: Transform, index: Optional[Number] = None) -> None:
        """
        Register a transform run on all metrics before rendering.

        Hooks run in ascending index order, ties in registration order.
        Without an index the hook runs after every hook registered so far.
        """
        if index is None:
            index = len(self.hooks) + 1
        self.hooks.append(Hook(name=name, transform=transform, index=index, sequence=next(self._sequence)))
        logger.debug("Server-Timing hook %s registered with index %s", name, index)

    def remove_hook(self, name: str) -> None:
        """Remove every hook registered under a name."""
        self.hooks = [hook for hook in self.hooks if hook.name != name]
        logger.debug("Server-Timing hook %s removed", name)

    def _apply_hooks(self) -> Metrics:
        metrics = {name: replace(metric) for name, metric in self.metrics.items()}
        for hook in sorted(self.hooks, key=lambda hook: (hook.index, hook.sequence)):
            metrics = hook.transform(metrics)
        return metrics

    def render(self) -> List[str]:
        """Render current metrics to header fragments, in insertion order."""
        now = self._clock()
        fragments = []
        for name, metric in self._apply_hooks().items():
            if metric.duration is not None:
                duration = metric.duration
            else:
                duration = compute_duration_ms(
                    metric.started_at or self.initialized_at,
                    metric.ended_at or now,
                )
            fragments.append(build_header(name, metric.description, duration, self.legacy))
        return fragments

    def add_headers(self, response: HeaderTarget) -> None:
        """
        Write all metrics to the Server-Timing header and clear them.

        Values already present on the response are kept in front.

        Raises:
            HeadersAlreadySentError: response headers are already transmitted
        """
        if headers_sent(response):
            raise HeadersAlreadySentError()
        fragments = self.render()
        if fragments:
            _append_header_values(response.headers, fragments)
        logger.debug("Server-Timing wrote %d metrics", len(fragments))
        self.metrics = {}

    def send(
        self,
        response: HeaderTarget,
        name: str,
        description: Optional[str] = None,
        duration: Number = 0,
    ) -> None:
        """
        Write a single metric to the response right away.

        Works with the Response injected into FastAPI handlers; the value ends
        up in front of the metrics written when the response starts.
        """
        if not name_is_valid(name):
            raise InvalidMetricNameError(name)
        if headers_sent(response):
            raise HeadersAlreadySentError()
        _append_header_values(response.headers, [build_header(name, description, duration, self.legacy)])


def _append_header_values(headers: MutableHeaders, values: List[str]) -> None:
    merged = headers.getlist(HEADER_NAME) + values
    del headers[HEADER_NAME]
    for value in merged:
        headers.append(HEADER_NAME, value)
