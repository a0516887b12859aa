"""Timestamps for store writes."""

from datetime import UTC, datetime, timedelta

_TICK = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def stamp_after(previous: datetime | None) -> datetime:
    """Current UTC time, nudged forward so it is strictly later than ``previous``."""
    now = utc_now()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=UTC)
    return now if now > previous else previous + _TICK
