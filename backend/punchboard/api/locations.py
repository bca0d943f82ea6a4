from fastapi import APIRouter, Depends, Query

from punchboard.api.deps import get_repository
from punchboard.schemas.stats import LatestLocationsResponse, SiteLocationsResponse
from punchboard.services.aggregates import latest_locations, site_locations
from punchboard.services.repository import EventRepository

router = APIRouter()


@router.get(
    "/",
    response_model=SiteLocationsResponse,
    summary="Sites seen in the punch log (filter options)",
)
async def list_locations(
    repo: EventRepository = Depends(get_repository),
) -> SiteLocationsResponse:
    return site_locations(repo)


@router.get(
    "/latest",
    response_model=LatestLocationsResponse,
    summary="Most recent GPS position and geofence status per employee (Map)",
)
async def get_latest_locations(
    location_id: str | None = Query(default=None),
    repo: EventRepository = Depends(get_repository),
) -> LatestLocationsResponse:
    return latest_locations(repo, location_id)
