"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (query params without offset) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_timestamp(seconds: int) -> datetime:
    """JWT NumericDate (seconds since epoch) -> aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
