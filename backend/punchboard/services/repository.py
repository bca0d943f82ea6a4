"""
In-memory index over one snapshot of normalized punch events.

Built once per refresh cycle from the sheet blob and never mutated; every
derivation (shifts, exceptions, KPIs) reads from it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, time

from punchboard.core.config import Settings, settings
from punchboard.schemas.punch import PunchEvent, location_id_for
from punchboard.services.csv_parser import normalize_employee_id, parse_csv

logger = logging.getLogger(__name__)


def group_by_employee(events: Iterable[PunchEvent]) -> dict[str, list[PunchEvent]]:
    """Group already-chronological events by employee, keeping their order."""
    groups: dict[str, list[PunchEvent]] = {}
    for event in events:
        groups.setdefault(event.employee_id, []).append(event)
    return groups


def at_site(event: PunchEvent, location_id: str | None) -> bool:
    """True when no site filter is given or the punch was made at that site."""
    return not location_id or event.location_id == location_id_for(location_id)


class EventRepository:
    def __init__(
        self,
        events: Iterable[PunchEvent],
        dropped_rows: int = 0,
        config: Settings = settings,
    ) -> None:
        self.corrections = config.EMPLOYEE_ID_CORRECTIONS
        # sorted() is stable: equal timestamps keep their input order
        self.events: tuple[PunchEvent, ...] = tuple(
            sorted(events, key=lambda e: e.timestamp)
        )
        self.dropped_rows = dropped_rows
        self.employees: dict[str, str] = {}
        self.by_employee: dict[str, list[PunchEvent]] = {}
        self.by_date: dict[date, list[PunchEvent]] = {}

        for event in self.events:
            self._remember_name(event)
            self.by_employee.setdefault(event.employee_id, []).append(event)
            self.by_date.setdefault(event.timestamp.date(), []).append(event)

    @classmethod
    def from_csv(cls, text: str, config: Settings = settings) -> "EventRepository":
        events, errors = parse_csv(text, config)
        if errors:
            logger.info("Dropped %d malformed row(s) from sheet export", len(errors))
        return cls(events, dropped_rows=len(errors), config=config)

    def _remember_name(self, event: PunchEvent) -> None:
        current = self.employees.get(event.employee_id)
        if current is None:
            self.employees[event.employee_id] = event.employee_name or event.employee_id
        elif event.employee_name and (not current or current == event.employee_id):
            self.employees[event.employee_id] = event.employee_name

    def __len__(self) -> int:
        return len(self.events)

    def name_for(self, employee_id: str) -> str:
        employee_id = normalize_employee_id(employee_id, self.corrections)
        return self.employees.get(employee_id, employee_id)

    def events_on(self, day: date, location_id: str | None = None) -> list[PunchEvent]:
        if day is None:
            raise ValueError("day is required")
        events = self.by_date.get(day, [])
        return [e for e in events if at_site(e, location_id)]

    def employee_events(
        self,
        employee_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[PunchEvent]:
        """Chronological events for one employee; `end` covers the whole day."""
        events = self.by_employee.get(normalize_employee_id(employee_id, self.corrections), [])
        if start is not None:
            lower = datetime.combine(start, time.min)
            events = [e for e in events if e.timestamp >= lower]
        if end is not None:
            upper = datetime.combine(end, time.max)
            events = [e for e in events if e.timestamp <= upper]
        return list(events)
