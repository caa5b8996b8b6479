"""Time window helpers used for 'today' queries."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today_window_local(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return today's local midnight-to-midnight window as UTC boundaries.

    Timestamps are stored in UTC, so the local day is converted before it is
    compared against ``created_at``/``updated_at`` columns.
    """
    local_now = (now or datetime.now(timezone.utc)).astimezone()
    start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

