"""Calendar buckets (day/week/month/year) computed in an arbitrary timezone.

Bucket keys sort lexically in time order:

- day   ``YYYY-MM-DD``
- week  ``YYYY-MM-DD`` of the week's first day
- month ``YYYY-MM``
- year  ``YYYY``

Instants may be naive (taken as UTC) or aware. Bucket boundaries are local
midnights in the bucket's timezone.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from finance_tracker.core.errors import ValidationError

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class BucketUnit(str, Enum):
    day = "day"
    week = "week"
    month = "month"
    year = "year"


def parse_weekday(value: str | int) -> int:
    """Return the ``date.weekday()`` index for a weekday name or index."""
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValidationError(f"Invalid week start '{value}'")
    name = value.strip().lower()
    if name.isdigit() and 0 <= int(name) <= 6:
        return int(name)
    for index, weekday in enumerate(WEEKDAYS):
        if len(name) >= 3 and weekday.startswith(name):
            return index
    raise ValidationError(f"Invalid week start '{value}'")


def resolve_timezone(name: str | None, fallback: str = "UTC") -> ZoneInfo:
    key = (name or "").strip() or fallback
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise ValidationError(f"Unknown timezone '{key}'") from exc


def to_local(instant: datetime, tz: ZoneInfo) -> datetime:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz)


def local_midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def add_months(day: date, count: int) -> date:
    month_index = (day.year * 12) + (day.month - 1) + count
    return date(month_index // 12, (month_index % 12) + 1, 1)


def start_date(day: date, unit: BucketUnit, week_start: int = 0) -> date:
    """First calendar date of the bucket containing ``day``."""
    if unit is BucketUnit.day:
        return day
    if unit is BucketUnit.week:
        return day - timedelta(days=(day.weekday() - week_start) % 7)
    if unit is BucketUnit.month:
        return day.replace(day=1)
    return date(day.year, 1, 1)


def advance(day: date, unit: BucketUnit, count: int = 1) -> date:
    """Move a bucket start date by ``count`` units."""
    if unit is BucketUnit.day:
        return day + timedelta(days=count)
    if unit is BucketUnit.week:
        return day + timedelta(days=7 * count)
    if unit is BucketUnit.month:
        return add_months(day, count)
    return date(day.year + count, 1, 1)


def format_key(day: date, unit: BucketUnit) -> str:
    if unit is BucketUnit.month:
        return f"{day.year:04d}-{day.month:02d}"
    if unit is BucketUnit.year:
        return f"{day.year:04d}"
    return day.isoformat()


def parse_key(key: str, unit: BucketUnit) -> date:
    try:
        if unit is BucketUnit.month:
            year, month = key.split("-")
            if len(year) != 4 or len(month) != 2:
                raise ValueError(key)
            return date(int(year), int(month), 1)
        if unit is BucketUnit.year:
            if len(key) != 4:
                raise ValueError(key)
            return date(int(key), 1, 1)
        return date.fromisoformat(key)
    except ValueError as exc:
        raise ValidationError(f"Invalid {unit.value} key '{key}'") from exc


def truncate(instant: datetime, unit: BucketUnit, tz: ZoneInfo, week_start: int = 0) -> datetime:
    local_day = to_local(instant, tz).date()
    return local_midnight(start_date(local_day, unit, week_start), tz)


def bucket_bounds(
    instant: datetime,
    unit: BucketUnit,
    tz: ZoneInfo,
    week_start: int = 0,
) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` of the bucket containing ``instant``."""
    first = start_date(to_local(instant, tz).date(), unit, week_start)
    return local_midnight(first, tz), local_midnight(advance(first, unit), tz)


def bucket_key(instant: datetime, unit: BucketUnit, tz: ZoneInfo, week_start: int = 0) -> str:
    local_day = to_local(instant, tz).date()
    return format_key(start_date(local_day, unit, week_start), unit)


def same_bucket(
    first: datetime,
    second: datetime,
    unit: BucketUnit,
    tz: ZoneInfo,
    week_start: int = 0,
) -> bool:
    return truncate(first, unit, tz, week_start) == truncate(second, unit, tz, week_start)


def next_key(key: str, unit: BucketUnit) -> str:
    return format_key(advance(parse_key(key, unit), unit), unit)


def key_sequence(start_key: str, end_key: str, unit: BucketUnit) -> list[str]:
    """Every key from ``start_key`` to ``end_key`` inclusive, without gaps."""
    current = parse_key(start_key, unit)
    last = parse_key(end_key, unit)
    keys: list[str] = []
    while current <= last:
        keys.append(format_key(current, unit))
        # Never step past the last key; it may sit at date.max's year.
        if current == last:
            break
        current = advance(current, unit)
    return keys


def bucket_count(start_key: str, end_key: str, unit: BucketUnit) -> int:
    """Length of ``key_sequence(start_key, end_key, unit)`` without building it."""
    first = parse_key(start_key, unit)
    last = parse_key(end_key, unit)
    if last < first:
        return 0
    if unit is BucketUnit.day:
        return (last - first).days + 1
    if unit is BucketUnit.week:
        return (last - first).days // 7 + 1
    if unit is BucketUnit.month:
        return (last.year - first.year) * 12 + (last.month - first.month) + 1
    return last.year - first.year + 1


@dataclass(frozen=True)
class BucketSpec:
    """A unit bound to a timezone and week start."""

    unit: BucketUnit
    tz: ZoneInfo
    week_start: int = 0

    def key(self, instant: datetime) -> str:
        return bucket_key(instant, self.unit, self.tz, self.week_start)

    def truncate(self, instant: datetime) -> datetime:
        return truncate(instant, self.unit, self.tz, self.week_start)

    def bounds(self, instant: datetime) -> tuple[datetime, datetime]:
        return bucket_bounds(instant, self.unit, self.tz, self.week_start)

    def sequence(self, start_key: str, end_key: str) -> list[str]:
        return key_sequence(start_key, end_key, self.unit)

    def count(self, start_key: str, end_key: str) -> int:
        return bucket_count(start_key, end_key, self.unit)

    def start_of_key(self, key: str) -> datetime:
        return local_midnight(parse_key(key, self.unit), self.tz)
