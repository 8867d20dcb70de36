"""
UTC helpers.

Every datetime the server stores or compares is naive UTC; timezone-aware
values from clients are converted on the way in, and serialized with a
trailing 'Z' on the way out.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def as_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return as_naive_utc(datetime.now(timezone.utc))


def older_than(moment: datetime, age: timedelta, *, now: Optional[datetime] = None) -> bool:
    """True when more than `age` has passed since `moment`."""
    return (now or utcnow()) - moment > age


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse "YYYY-MM-DD", "YYYY-MM-DDTHH:MM[:SS]" or either with an offset/Z.

    Blank input gives None; anything unparseable raises ValueError.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    # fromisoformat only accepts a Z suffix from 3.11 on
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    return as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 string ending in 'Z', or None."""
    if dt is None:
        return None
    return as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"
