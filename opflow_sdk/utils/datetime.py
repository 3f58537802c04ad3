"""Datetime helpers.

Timestamps are naive UTC everywhere so they compare cleanly with values read
back from SQLite.
"""
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return the current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def seconds_since(moment: datetime, now: datetime | None = None) -> float:
    """Seconds elapsed between ``moment`` and ``now`` (defaults to utc_now)."""
    return ((now or utc_now()) - moment) / timedelta(seconds=1)
