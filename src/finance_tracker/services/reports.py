import asyncio
from collections.abc import Callable
from datetime import date, datetime, timedelta

from zoneinfo import ZoneInfo

from finance_tracker.core.errors import ValidationError
from finance_tracker.domain.aggregation import (
    ClassTotals,
    densify,
    running_balances,
    sum_points,
)
from finance_tracker.domain.buckets import (
    BucketSpec,
    BucketUnit,
    format_key,
    local_midnight,
    resolve_timezone,
    start_date,
)
from finance_tracker.domain.timestamps import EARLIEST_YEAR, LATEST_YEAR, utc_now
from finance_tracker.logger import get_logger
from finance_tracker.models import (
    DayTotals,
    MonthlyReport,
    MonthTotals,
    SeriesEntry,
    SeriesReport,
    TotalReport,
)
from finance_tracker.storage.transactions import TransactionStore

logger = get_logger(__name__)

# Keeps local year boundaries convertible to UTC in every zone.
MIN_YEAR = 2
MAX_YEAR = 9998
MAX_SERIES_POINTS = 1000
MAX_TOTAL_MONTHS = 12 * (LATEST_YEAR - EARLIEST_YEAR + 1)


class ReportService:
    """Time-bucketed, gap-filled reports over one owner's transactions.

    The store only returns buckets holding data; every report builds its
    expected key sequence independently and fills the rest with zeros.
    """

    def __init__(
        self,
        store: TransactionStore,
        *,
        default_timezone: str = "UTC",
        week_start: int = 0,
        years_window: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.default_timezone = default_timezone
        self.week_start = week_start
        self.years_window = years_window
        self.clock = clock

    def _timezone(self, name: str | None) -> ZoneInfo:
        return resolve_timezone(name, self.default_timezone)

    def _server_now(self) -> datetime:
        return self.clock().astimezone(self._timezone(None))

    async def weekly(self, owner_id: str, tz_name: str | None = None) -> list[DayTotals]:
        tz = self._timezone(tz_name)
        days = BucketSpec(BucketUnit.day, tz, self.week_start)
        week_start, week_end = BucketSpec(BucketUnit.week, tz, self.week_start).bounds(self.clock())

        partial = await asyncio.to_thread(
            self.store.sum_by_bucket,
            owner_id,
            days,
            start=week_start,
            end=week_end,
        )
        keys = days.sequence(days.key(week_start), days.key(week_end - timedelta(seconds=1)))
        return [
            DayTotals(day=point.key, **vars(point.totals))
            for point in densify(keys, partial)
        ]

    async def monthly(
        self,
        owner_id: str,
        year: int | None = None,
        tz_name: str | None = None,
    ) -> MonthlyReport:
        tz = self._timezone(tz_name)
        now = self._server_now()
        year = year or now.year
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise ValidationError(f"Invalid year {year}")

        year_start = local_midnight(date(year, 1, 1), tz)
        next_year = local_midnight(date(year + 1, 1, 1), tz)
        months = BucketSpec(BucketUnit.month, tz)

        flows = await asyncio.to_thread(
            self.store.sum_by_bucket,
            owner_id,
            months,
            start=year_start,
            end=next_year,
        )
        carry_raw = await asyncio.to_thread(self.store.totals_by_class, owner_id, end=year_start)

        keys = months.sequence(f"{year:04d}-01", f"{year:04d}-12")
        series = [
            MonthTotals(month=point.key, **vars(point.totals))
            for point in densify(keys, flows)
        ]

        if year < now.year:
            latest_month = 12
        elif year == now.year:
            latest_month = now.month
        else:
            latest_month = 0

        return MonthlyReport(
            year=year,
            data=series,
            carry=ClassTotals.from_mapping(carry_raw).to_amounts(),
            latest_month=latest_month,
        )

    async def total(self, owner_id: str, tz_name: str | None = None) -> TotalReport:
        tz = self._timezone(tz_name)
        first = await asyncio.to_thread(self.store.first_occurred_at, owner_id)
        if first is None:
            return TotalReport(data=[], totals=ClassTotals().to_balance())

        last = await asyncio.to_thread(self.store.last_occurred_at, owner_id)
        months = BucketSpec(BucketUnit.month, tz)
        # Future-dated savings push the end past the current month.
        first_key = months.key(first)
        end_key = max(months.key(self.clock()), months.key(last or first))
        span = months.count(first_key, end_key)
        if span > MAX_TOTAL_MONTHS:
            logger.warning("[REPORT] Total report for %s would span %d months.", owner_id, span)
            raise ValidationError(f"History spans {span} months; the limit is {MAX_TOTAL_MONTHS}")

        partial = await asyncio.to_thread(self.store.sum_by_bucket, owner_id, months)
        points = densify(months.sequence(first_key, end_key), partial)
        totals = sum_points(points)

        logger.debug("[REPORT] Total report for %s spans %d months.", owner_id, len(points))
        return TotalReport(
            data=[MonthTotals(month=point.key, **vars(point.totals)) for point in points],
            totals=totals.to_balance(),
        )

    def years(self) -> list[int]:
        current = self._server_now().year
        return list(range(current - self.years_window, current + self.years_window + 1))

    async def series(
        self,
        owner_id: str,
        unit: BucketUnit,
        start: date,
        end: date | None = None,
        tz_name: str | None = None,
    ) -> SeriesReport:
        tz = self._timezone(tz_name)
        end = end or self.clock().astimezone(tz).date()
        if start > end:
            raise ValidationError("start must not be after end")
        if start.year < MIN_YEAR or end.year > MAX_YEAR:
            raise ValidationError(f"Dates must fall between years {MIN_YEAR} and {MAX_YEAR}")

        spec = BucketSpec(unit, tz, self.week_start)
        first_key = format_key(start_date(start, unit, self.week_start), unit)
        last_key = format_key(start_date(end, unit, self.week_start), unit)

        span = spec.count(first_key, last_key)
        if span > MAX_SERIES_POINTS:
            raise ValidationError(
                f"Range spans {span} {unit.value} buckets; the limit is {MAX_SERIES_POINTS}"
            )

        range_start = spec.start_of_key(first_key)
        _, range_end = spec.bounds(spec.start_of_key(last_key))
        keys = spec.sequence(first_key, last_key)

        partial = await asyncio.to_thread(
            self.store.sum_by_bucket,
            owner_id,
            spec,
            start=range_start,
            end=range_end,
        )
        carry_raw = await asyncio.to_thread(self.store.totals_by_class, owner_id, end=range_start)
        carry = ClassTotals.from_mapping(carry_raw)

        points = densify(keys, partial)
        data = [
            SeriesEntry(
                key=point.key,
                balance=point.totals.balance,
                running=running,
                **vars(point.totals),
            )
            for point, running in zip(points, running_balances(points, carry))
        ]
        return SeriesReport(
            period=unit.value,
            start=first_key,
            end=last_key,
            data=data,
            carry=carry.to_balance(),
            totals=sum_points(points).to_balance(),
        )
