from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from finance_tracker.api.dependencies import (
    CurrentPrincipal,
    get_current_principal,
    get_report_service,
)
from finance_tracker.domain.buckets import BucketUnit
from finance_tracker.models import (
    DayTotals,
    MonthlyReport,
    SeriesReport,
    TotalReport,
    YearsList,
)
from finance_tracker.services.reports import MAX_YEAR, MIN_YEAR, ReportService

router = APIRouter(tags=["reports"], dependencies=[Depends(get_current_principal)])

Reports = Annotated[ReportService, Depends(get_report_service)]


@router.get("/reports/weekly", response_model=list[DayTotals])
async def weekly_report(
    principal: CurrentPrincipal,
    service: Reports,
    tz: str | None = None,
) -> list[DayTotals]:
    return await service.weekly(principal.id, tz)


@router.get("/reports/monthly", response_model=MonthlyReport)
async def monthly_report(
    principal: CurrentPrincipal,
    service: Reports,
    year: Annotated[int | None, Query(ge=MIN_YEAR, le=MAX_YEAR)] = None,
    tz: str | None = None,
) -> MonthlyReport:
    return await service.monthly(principal.id, year=year, tz_name=tz)


@router.get("/reports/total", response_model=TotalReport)
async def total_report(
    principal: CurrentPrincipal,
    service: Reports,
    tz: str | None = None,
) -> TotalReport:
    return await service.total(principal.id, tz)


@router.get("/reports/years", response_model=YearsList)
async def report_years(service: Reports) -> YearsList:
    return YearsList(years=service.years())


@router.get("/reports/series", response_model=SeriesReport)
async def series_report(
    principal: CurrentPrincipal,
    service: Reports,
    start: date,
    end: date | None = None,
    unit: BucketUnit = BucketUnit.month,
    tz: str | None = None,
) -> SeriesReport:
    return await service.series(principal.id, unit, start, end, tz)
