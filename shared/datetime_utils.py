"""
Date/time and duration helpers — framework-agnostic.

MongoDB hands back naive datetimes unless the client is created with
``tz_aware=True``; ``as_utc`` normalises both shapes so expiry comparisons
never mix naive and aware values.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime.

    Naive datetimes (no ``tzinfo``) are assumed to be UTC. ``None`` passes
    through unchanged.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_duration(value: Any) -> int:
    """Parse a duration into whole seconds.

    Accepts:
    - ``int`` → returned unchanged
    - ``"900"`` → 900
    - ``"30s"``, ``"15m"``, ``"12h"``, ``"7d"`` → seconds

    Raises:
        ValueError: for negative numbers or unrecognised strings.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Duration must not be negative: {value!r}")
        return value
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _UNIT_SECONDS[unit.lower()]
