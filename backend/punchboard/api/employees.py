from fastapi import APIRouter, Depends, Query

from punchboard.api.deps import get_repository, parse_date
from punchboard.schemas.stats import ShiftHistoryResponse
from punchboard.services.aggregates import employee_shifts
from punchboard.services.repository import EventRepository

router = APIRouter()


@router.get(
    "/{employee_id}/shifts",
    response_model=ShiftHistoryResponse,
    summary="Paired shifts for one employee, most recent first",
)
async def get_employee_shifts(
    employee_id: str,
    start_date: str | None = Query(default=None, description="ISO date YYYY-MM-DD"),
    end_date: str | None = Query(default=None, description="ISO date YYYY-MM-DD"),
    repo: EventRepository = Depends(get_repository),
) -> ShiftHistoryResponse:
    start = parse_date(start_date, None)
    end = parse_date(end_date, None)
    return employee_shifts(repo, employee_id, start, end)
