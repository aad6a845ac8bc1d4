"""
Timezone and timestamp utilities.

Chain and indexer timestamps are unix seconds; everything stored is a
timezone-aware UTC datetime.
"""

from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def now_unix() -> int:
    """Return the current unix time in whole seconds."""
    return int(now_utc().timestamp())


def from_unix(seconds: int | None) -> datetime | None:
    """Convert unix seconds to a UTC datetime; None and 0 map to None."""
    if not seconds:
        return None
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)
