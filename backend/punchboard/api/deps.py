from datetime import date

from fastapi import Depends, HTTPException, Request, status

from punchboard.services.repository import EventRepository
from punchboard.services.sheet_source import SheetSource, StaticSource


def get_source(request: Request) -> SheetSource | StaticSource:
    return request.app.state.source


async def get_repository(
    source: SheetSource | StaticSource = Depends(get_source),
) -> EventRepository:
    """One immutable snapshot of the sheet per request."""
    return EventRepository.from_csv(await source.fetch_text())


def parse_date(val: str | None, default: date | None) -> date | None:
    if val is None:
        return default
    try:
        return date.fromisoformat(val)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date '{val}', expected YYYY-MM-DD",
        )
