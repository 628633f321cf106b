# Overview: UTC clock, ISO-8601 parsing and serialization helpers.

"""
All timestamps are stored as naive UTC. Input may carry an offset or a
trailing Z; output always ends in Z. Calendar dates (batch expiry,
manufacturing) are plain dates with no timezone.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def days_from_today(days: int) -> date:
    return today() + timedelta(days=days)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-03-01T08:00", "2026-03-01T08:00:00Z" or "...+07:00" -> naive UTC.
    Blank -> None. Raises ValueError for anything else.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """"YYYY-MM-DD", or a full ISO datetime reduced to its UTC date."""
    text = (value or "").strip()
    if not text:
        return None
    if "T" not in text and " " not in text:
        return date.fromisoformat(text)
    return parse_iso_datetime(text).date()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a Z suffix; naive input is UTC."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"


def to_iso_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()
