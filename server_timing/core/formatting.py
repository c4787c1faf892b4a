"""
Server-Timing header fragment rendering.

Two wire formats are supported:
- current: metric;desc="description";dur=123
- legacy (Chrome 64 and older): metric=123; "description"

See: https://w3c.github.io/server-timing/#the-server-timing-header-field
"""

import re
from typing import Optional, Union

Number = Union[int, float]

# HTTP token, see https://tools.ietf.org/html/rfc7230#section-3.2.6
# ()/:;<=>?@[]{}" and whitespace are not allowed
NAME_PATTERN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def name_is_valid(name) -> bool:
    """Check if a metric name is a non-empty HTTP token."""
    return isinstance(name, str) and NAME_PATTERN.fullmatch(name) is not None


def format_number(value: Number) -> str:
    """Render a duration without a trailing .0 for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def current_style(name: str, description: Optional[str], duration: Optional[Number]) -> str:
    """Build a fragment for the current specification."""
    fragment = name
    if description is not None:
        fragment += f';desc="{description}"'
    if duration is not None:
        fragment += f";dur={format_number(duration)}"
    return fragment


def legacy_style(name: str, description: Optional[str], duration: Optional[Number]) -> str:
    """Build a fragment for the pre-Chrome 65 specification."""
    fragment = name
    if duration is not None:
        fragment += f"={format_number(duration)}"
    if description is not None:
        fragment += f'; "{description}"'
    return fragment


def build_header(
    name: str,
    description: Optional[str],
    duration: Optional[Number],
    legacy: bool = False,
) -> str:
    """Build one Server-Timing fragment in the requested wire format."""
    if legacy:
        return legacy_style(name, description, duration)
    return current_style(name, description, duration)
