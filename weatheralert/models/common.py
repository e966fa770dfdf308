"""Common types and helpers shared across models."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return to_iso(utc_now())


def to_iso(dt: datetime) -> str:
    """Fixed-width UTC ISO string so stored timestamps sort lexically."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def normalize_city(city: str) -> str:
    """Cache and grouping key for a city: trimmed, lowercase."""
    return city.strip().lower()


def parse_timestamp(iso_str: str | None) -> datetime | None:
    """Parse an ISO timestamp, assuming UTC when no offset is given."""
    if not iso_str:
        return None
    try:
        dt = datetime.fromisoformat(iso_str)
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def parse_date_bound(value: str, end_of_day: bool = False) -> datetime:
    """Parse YYYY-MM-DD or a full ISO timestamp as a UTC range bound.

    A bare date used as an end bound covers the whole day.
    Raises ValueError for unparseable input.
    """
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    if end_of_day and len(value.strip()) == 10:
        dt = dt.replace(hour=23, minute=59, second=59, microsecond=999999)
    return dt
