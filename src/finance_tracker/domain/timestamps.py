from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from finance_tracker.core.errors import ValidationError
from finance_tracker.domain.buckets import local_midnight

# Stored instants stay far enough from date.min/max to convert into any zone.
EARLIEST_YEAR = 1900
LATEST_YEAR = 2100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Aware UTC datetime; naive input is read in ``tz`` (UTC when omitted)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    return to_utc(value).replace(tzinfo=None)


def _check_year(year: int) -> None:
    if not EARLIEST_YEAR <= year <= LATEST_YEAR:
        raise ValidationError(f"Date must fall between {EARLIEST_YEAR} and {LATEST_YEAR}")


def parse_occurred_at(raw: str | int | float | None, tz: ZoneInfo, now: datetime) -> datetime:
    """Parse a client supplied date, falling back to ``now`` when missing or invalid.

    ``YYYY-MM-DD`` is local midnight in ``tz``; naive datetimes are local to
    ``tz``; offset-aware datetimes keep their offset. Always returns UTC.
    Parseable dates outside ``EARLIEST_YEAR..LATEST_YEAR`` raise
    ``ValidationError``.
    """
    if not isinstance(raw, str) or not raw.strip():
        return to_utc(now)
    text = raw.strip()
    if len(text) == 10:
        try:
            day = date.fromisoformat(text)
        except ValueError:
            return to_utc(now)
        _check_year(day.year)
        return to_utc(local_midnight(day, tz))
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return to_utc(now)
    _check_year(parsed.year)
    return to_utc(parsed, tz)
