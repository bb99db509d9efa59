"""Human-readable durations such as '30s', '1m 30s' or '250ms'."""

from __future__ import annotations

import math
import re

_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "ms": 1e-3,
    "s": 1.0, "sec": 1.0, "secs": 1.0,
    "m": 60.0, "min": 60.0, "mins": 60.0,
    "h": 3600.0, "hr": 3600.0, "hrs": 3600.0,
    "d": 86400.0, "day": 86400.0, "days": 86400.0,
}

_GROUP = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-z]+)\s*")

# Largest unit first; the formatter peels them off in order.
_FORMAT_UNITS = (
    ("d", 86400_000_000_000),
    ("h", 3600_000_000_000),
    ("m", 60_000_000_000),
    ("s", 1_000_000_000),
    ("ms", 1_000_000),
    ("us", 1_000),
    ("ns", 1),
)


def parse_duration(text: str) -> float:
    """Parse a duration string to seconds.

    A bare number is taken as seconds. Otherwise the string is a sequence of
    ``<number><unit>`` groups which are summed, e.g. ``1h 30m`` or ``1m30s``.
    """
    s = text.strip().lower()
    if not s:
        raise ValueError("empty duration")

    try:
        total = float(s)
    except ValueError:
        total = 0.0
        pos = 0
        while pos < len(s):
            match = _GROUP.match(s, pos)
            if match is None:
                raise ValueError(f"invalid duration: {text!r}")
            value, unit = match.groups()
            if unit not in _UNITS:
                raise ValueError(f"unknown time unit {unit!r} in {text!r}")
            total += float(value) * _UNITS[unit]
            pos = match.end()

    if not math.isfinite(total) or total <= 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return total


def format_duration(seconds: float) -> str:
    """Render seconds as compound units, e.g. ``90.0`` -> ``'1m 30s'``."""
    remaining = round(seconds * 1_000_000_000)
    if remaining <= 0:
        return "0s"
    parts: list[str] = []
    for suffix, size in _FORMAT_UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count}{suffix}")
    return " ".join(parts)
