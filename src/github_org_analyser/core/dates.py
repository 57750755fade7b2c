"""Timestamp helpers shared by the API client and the report builders."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime.

    Returns None for missing or malformed values.
    """
    if not value:
        return None
    try:
        parsed = isoparse(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def months_ago(now: datetime, months: int) -> datetime:
    """Calendar-month cutoff (Jan 31 minus one month is Dec 31; Mar 31 minus one month is Feb 28/29)."""
    return now - relativedelta(months=months)


def days_ago(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed, rounded down."""
    return (later - earlier).days
