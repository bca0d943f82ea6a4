"""
Dashboard analytics routes.

Every request rebuilds the repository from the current sheet snapshot and
derives the read model from scratch.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from punchboard.api.deps import get_repository, parse_date
from punchboard.schemas.stats import (
    HourlyActivityResponse,
    KPISnapshot,
    TopWorkloadResponse,
)
from punchboard.services.aggregates import hourly_activity, kpi_snapshot, top_workload
from punchboard.services.repository import EventRepository

router = APIRouter()


@router.get(
    "/kpis",
    response_model=KPISnapshot,
    summary="KPI snapshot for one day",
)
async def get_kpis(
    date_: str | None = Query(default=None, alias="date", description="ISO date YYYY-MM-DD"),
    location_id: str | None = Query(default=None),
    repo: EventRepository = Depends(get_repository),
) -> KPISnapshot:
    day = parse_date(date_, date.today())
    return kpi_snapshot(repo, day, location_id)


@router.get(
    "/activity/hourly",
    response_model=HourlyActivityResponse,
    summary="Punch-in / punch-out counts per hour (Bar Chart)",
)
async def get_hourly_activity(
    date_: str | None = Query(default=None, alias="date", description="ISO date YYYY-MM-DD"),
    location_id: str | None = Query(default=None),
    hour_from: int = Query(default=6, ge=0, le=23),
    hour_to: int = Query(default=22, ge=0, le=23),
    repo: EventRepository = Depends(get_repository),
) -> HourlyActivityResponse:
    day = parse_date(date_, date.today())
    if hour_from > hour_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="hour_from must not be greater than hour_to",
        )
    return hourly_activity(repo, day, location_id, hour_from, hour_to)


@router.get(
    "/employees/top-workload",
    response_model=TopWorkloadResponse,
    summary="Top employees by paired working hours",
)
async def get_top_workload(
    date_: str | None = Query(default=None, alias="date", description="ISO date YYYY-MM-DD"),
    location_id: str | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    repo: EventRepository = Depends(get_repository),
) -> TopWorkloadResponse:
    day = parse_date(date_, date.today())
    return top_workload(repo, day, limit, location_id)
