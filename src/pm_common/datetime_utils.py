"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def add_days(ts: datetime, days: int) -> datetime:
    """Exact calendar-independent offset: ts + days * 24h."""
    return ts + timedelta(days=days)


def iso_or_none(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None
