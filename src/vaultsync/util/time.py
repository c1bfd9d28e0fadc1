from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return current time as tz-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_dt(dt: datetime) -> datetime:
    """Ensure datetime is tz-aware. Raises if naive."""
    if not isinstance(dt, datetime):
        raise TypeError("dt must be a datetime")
    if dt.tzinfo is None:
        raise ValueError("naive datetime is not allowed; timezone-aware required")
    return dt


def to_iso(dt: datetime) -> str:
    """
    Convert tz-aware datetime to an ISO 8601 UTC string with millisecond
    precision and a 'Z' suffix (e.g. 2025-01-01T12:34:56.789Z).
    """
    dt = normalize_dt(dt).astimezone(timezone.utc)
    s = dt.isoformat(timespec="milliseconds")
    return s.replace("+00:00", "Z")


def now_iso() -> str:
    """Current time as used for `lastUpdatedAt`."""
    return to_iso(now_utc())


def backup_timestamp(dt: datetime) -> str:
    """
    15-character `YYYYMMDD_HHMMSS` stamp derived from the ISO form.

    Separators are stripped and the date/time 'T' becomes '_'.
    """
    iso = to_iso(dt)
    return iso.replace("-", "").replace(":", "").replace("T", "_")[:15]


def epoch_ms(seconds: float) -> int:
    """Convert a POSIX timestamp (e.g. `st_mtime`) to integer milliseconds."""
    return int(seconds * 1000)
