"""Datetime parsing: lax frontmatter input -> ISO 8601 output."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pendulum


def parse_datetime(value: str | date | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime value into a timezone-aware datetime.

    Accepts what YAML frontmatter tends to produce:
    - ``datetime`` / ``date`` objects (YAML parses unquoted timestamps itself)
    - 2024-03-01 10:20:30+08:00
    - 2024-03-01 10:20
    - 2024-03-01
    - ISO 8601 variants with T separator

    Missing timezone defaults to default_tz. Missing time components default to zeros.
    Raises ValueError for unparseable strings.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=pendulum.timezone(default_tz))  # type: ignore[arg-type]
        return value
    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day, tz=default_tz)

    try:
        parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    except ValueError as exc:
        raise ValueError(f"Unrecognized datetime: {value!r}") from exc
    if not isinstance(parsed, pendulum.DateTime):
        if not isinstance(parsed, pendulum.Date):
            raise ValueError(f"Not a date or datetime: {value!r}")
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(parsed.year, parsed.month, parsed.day, tz=default_tz)
    return parsed


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601 for JSON serialization."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def sort_key(value: str) -> datetime:
    """Sort key for ISO timestamps stored in manifests.

    Timestamps carry different offsets, so compare the instants, not the strings.
    Unparseable values sort as the oldest.
    """
    try:
        return parse_datetime(value)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
