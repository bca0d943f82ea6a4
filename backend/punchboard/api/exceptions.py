from datetime import date

from fastapi import APIRouter, Depends, Query

from punchboard.api.deps import get_repository, parse_date
from punchboard.schemas.stats import ExceptionPage, ExceptionSeverity, ExceptionType
from punchboard.services.exception_detector import detect_exceptions, paginate_exceptions
from punchboard.services.repository import EventRepository

router = APIRouter()


@router.get(
    "/",
    response_model=ExceptionPage,
    summary="Attendance exceptions for one day (paginated)",
)
async def list_exceptions(
    date_: str | None = Query(default=None, alias="date", description="ISO date YYYY-MM-DD"),
    location_id: str | None = Query(default=None),
    type_: ExceptionType | None = Query(default=None, alias="type"),
    severity: ExceptionSeverity | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    repo: EventRepository = Depends(get_repository),
) -> ExceptionPage:
    day = parse_date(date_, date.today())
    items = detect_exceptions(repo, day, location_id=location_id)
    return paginate_exceptions(items, page, limit, exc_type=type_, severity=severity)
