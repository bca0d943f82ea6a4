"""
Shared fixtures for the engine and API tests.

Strategy:
- No network and no database: the API reads the sheet through its source
  dependency, which tests override with a StaticSource holding SAMPLE_CSV.
- SAMPLE_CSV describes one day (2026-03-02) with three employees whose
  numbers are worked out by hand in the tests that use it.
- Engine tests build events directly with the make_punch factory and pass an
  explicit Settings instance, so a local .env cannot change the results.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from punchboard.api.deps import get_source
from punchboard.core.config import Settings
from punchboard.main import app
from punchboard.schemas.punch import Coordinates, PunchEvent
from punchboard.services.repository import EventRepository
from punchboard.services.sheet_source import StaticSource

DAY = date(2026, 3, 2)

# Alice: 09:00-17:00 on site.
# Bob:   late (09:45), lunch break, one far punch-out (150 m). ID typed as "lylb 02".
# Carol: stray Out at 08:00 before her In, In at 250 m never closed.
# Last two rows are dropped (no ID, bad timestamp).
SAMPLE_CSV = """Name,Employee ID,Punch Type,Location,Timestamp,Manual Location,Distance(m)
Alice Smith,AYLB01,Punch In,"12.9716, 77.5946",2/3/2026 9:00,Office HQ,25
Alice Smith,AYLB01,Punch Out,"12.9716, 77.5946",2/3/2026 17:00,Office HQ,30
Bob Jones,lylb 02,Punch In,"12.9720, 77.5950",2/3/2026 9:45,Office HQ,75
Bob Jones,AYLB02,Punch Out,"12.9720, 77.5950",2/3/2026 12:00,Office HQ,150
Bob Jones,AYLB02,Punch In,"12.9720, 77.5950",2/3/2026 13:00,Office HQ,40
Bob Jones,AYLB02,Punch Out,"12.9720, 77.5950",2/3/2026 18:00,Office HQ,40
Carol White,AYLB03,Punch Out,,2/3/2026 8:00,Warehouse,
Carol White,AYLB03,Punch In,"13.0000, 77.6000",2/3/2026 8:30,Warehouse,250
,,Punch In,,2/3/2026 9:00,,
Dan Brown,AYLB04,Punch In,,not a date,,
"""


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> Settings:
    """Default thresholds, isolated from any .env on the machine."""
    return Settings(_env_file=None)


@pytest.fixture
def make_punch():
    """Factory: make_punch("in", "09:00", distance=25) → PunchEvent on DAY."""

    def _make(
        punch_type: str,
        hhmm: str,
        employee_id: str = "AYLB01",
        name: str = "Alice Smith",
        day: date = DAY,
        distance: float | None = None,
        site: str = "Office HQ",
        coordinates: tuple[float, float] | None = None,
    ) -> PunchEvent:
        hour, minute = (int(part) for part in hhmm.split(":"))
        return PunchEvent(
            employee_id=employee_id,
            employee_name=name,
            punch_type=punch_type,
            timestamp=datetime(day.year, day.month, day.day, hour, minute),
            manual_location=site,
            coordinates=Coordinates(lat=coordinates[0], long=coordinates[1]) if coordinates else None,
            distance_m=distance,
        )

    return _make


@pytest.fixture
def sample_repo() -> EventRepository:
    return EventRepository.from_csv(SAMPLE_CSV)


# ---------------------------------------------------------------------------
# HTTP client fixtures
# ---------------------------------------------------------------------------


def _client_for(text: str) -> AsyncClient:
    app.dependency_overrides[get_source] = lambda: StaticSource(text)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client() -> AsyncClient:
    """HTTPX async client whose sheet is SAMPLE_CSV."""
    async with _client_for(SAMPLE_CSV) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def empty_client() -> AsyncClient:
    """HTTPX async client whose sheet could not be fetched (empty blob)."""
    async with _client_for("") as ac:
        yield ac
    app.dependency_overrides.clear()
