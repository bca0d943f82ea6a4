"""
Dashboard read models: KPIs, hourly activity, workload ranking, latest
locations, site list and per-employee shift history.

Everything here is a pure function of the repository snapshot and its
arguments; the only thing that changes between two identical calls is
`server_timestamp`.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from punchboard.core.config import Settings, settings
from punchboard.core.rounding import round_half_up
from punchboard.schemas.punch import Coordinates, Shift, location_id_for
from punchboard.schemas.stats import (
    EmployeeLocation,
    HourlyActivityResponse,
    HourlyBucket,
    KPISnapshot,
    LatestLocationsResponse,
    ShiftHistoryResponse,
    ShiftRecord,
    SiteLocation,
    SiteLocationsResponse,
    TopWorkloadResponse,
    WorkloadEntry,
)
from punchboard.services.compliance import classify_distance
from punchboard.services.csv_parser import normalize_employee_id
from punchboard.services.exception_detector import late_minutes
from punchboard.services.repository import EventRepository, at_site, group_by_employee
from punchboard.services.shift_pairer import closed_minutes, pair_by_employee, pair_shifts


def _now() -> datetime:
    return datetime.now(timezone.utc)


def kpi_snapshot(
    repo: EventRepository,
    day: date,
    location_id: str | None = None,
    config: Settings = settings,
) -> KPISnapshot:
    day_events = repo.events_on(day)
    events = [e for e in day_events if at_site(e, location_id)]
    # Pair across all sites; a shift belongs to the site where it started
    shifts = [
        shift
        for pairing in pair_by_employee(day_events, config).values()
        for shift in pairing.shifts
        if at_site(shift.start, location_id)
    ]

    active = {e.employee_id for e in events if e.punch_type == "in"}
    total_minutes = closed_minutes(shifts)

    with_distance = [e for e in events if e.distance_m is not None]
    compliant = [e for e in with_distance if e.distance_m <= config.COMPLIANT_DISTANCE_M]
    # No distance data means no penalty
    compliance_pct = (
        int(round_half_up(len(compliant) / len(with_distance) * 100))
        if with_distance
        else 100
    )

    late_count = 0
    for employee_events in group_by_employee(day_events).values():
        first_in = next((e for e in employee_events if e.punch_type == "in"), None)
        if (
            first_in is not None
            and at_site(first_in, location_id)
            and late_minutes(first_in, config) is not None
        ):
            late_count += 1
    open_sessions = sum(1 for s in shifts if s.is_open)
    breaches = sum(1 for e in with_distance if e.distance_m > config.WARNING_DISTANCE_M)

    return KPISnapshot(
        active_employees_count=len(active),
        total_working_hours=round_half_up(total_minutes / 60, 1),
        on_site_compliance_pct=compliance_pct,
        exceptions_count=late_count + open_sessions + breaches,
        server_timestamp=_now(),
    )


def hourly_activity(
    repo: EventRepository,
    day: date,
    location_id: str | None = None,
    hour_from: int = 0,
    hour_to: int = 23,
) -> HourlyActivityResponse:
    if not 0 <= hour_from <= hour_to <= 23:
        raise ValueError("hour range must satisfy 0 <= hour_from <= hour_to <= 23")

    counts = [[0, 0] for _ in range(24)]
    for event in repo.events_on(day, location_id):
        counts[event.timestamp.hour][0 if event.punch_type == "in" else 1] += 1

    return HourlyActivityResponse(
        data=[
            HourlyBucket(hour=f"{h:02d}:00", punch_in=counts[h][0], punch_out=counts[h][1])
            for h in range(hour_from, hour_to + 1)
        ],
        server_timestamp=_now(),
    )


def top_workload(
    repo: EventRepository,
    day: date,
    limit: int = 10,
    location_id: str | None = None,
    config: Settings = settings,
) -> TopWorkloadResponse:
    """Employees ranked by paired hours; with `location_id`, shifts started at that site."""
    if limit < 1:
        raise ValueError("limit must be positive")

    totals: list[tuple[float, str]] = []
    for employee_id, pairing in pair_by_employee(repo.events_on(day), config).items():
        closed = [s for s in pairing.closed_shifts if at_site(s.start, location_id)]
        if closed:
            totals.append((closed_minutes(closed), employee_id))

    totals.sort(key=lambda t: (-t[0], t[1]))
    return TopWorkloadResponse(
        data=[
            WorkloadEntry(
                employee_id=employee_id,
                name=repo.employees.get(employee_id, employee_id),
                total_hours=round_half_up(minutes / 60, 1),
            )
            for minutes, employee_id in totals[:limit]
        ],
        server_timestamp=_now(),
    )


def latest_locations(
    repo: EventRepository,
    location_id: str | None = None,
    config: Settings = settings,
) -> LatestLocationsResponse:
    """Most recent punch per employee, for employees whose last punch has GPS."""
    data: list[EmployeeLocation] = []
    for employee_id, events in repo.by_employee.items():
        events = [e for e in events if at_site(e, location_id)]
        if not events:
            continue
        latest = events[-1]
        if latest.coordinates is None:
            continue
        data.append(
            EmployeeLocation(
                employee_id=employee_id,
                name=repo.employees.get(employee_id, employee_id),
                lat=latest.coordinates.lat,
                long=latest.coordinates.long,
                status=classify_distance(latest.distance_m, config),
                timestamp=latest.timestamp,
                distance=latest.distance_m,
            )
        )
    return LatestLocationsResponse(data=data, server_timestamp=_now())


def site_locations(repo: EventRepository, config: Settings = settings) -> SiteLocationsResponse:
    """Distinct manual location labels, with the first GPS fix seen at each."""
    fixes: dict[str, Coordinates | None] = {}
    for event in repo.events:
        label = event.manual_location
        if label and fixes.get(label) is None:
            fixes[label] = event.coordinates

    data = [
        SiteLocation(
            location_id=location_id_for(label),
            name=label,
            lat=coords.lat if coords else 0.0,
            long=coords.long if coords else 0.0,
            distance_threshold=config.COMPLIANT_DISTANCE_M,
        )
        for label, coords in fixes.items()
    ]
    return SiteLocationsResponse(data=data, server_timestamp=_now())


def _to_record(shift: Shift) -> ShiftRecord:
    return ShiftRecord(
        shift_start=shift.start.timestamp,
        shift_end=shift.end.timestamp if shift.end else None,
        duration_minutes=shift.duration_minutes,
        distance_start=shift.start.distance_m,
        distance_end=shift.end.distance_m if shift.end else None,
        on_site_start=shift.on_site_start,
        on_site_end=shift.on_site_end,
    )


def employee_shifts(
    repo: EventRepository,
    employee_id: str,
    start: date | None = None,
    end: date | None = None,
    config: Settings = settings,
) -> ShiftHistoryResponse:
    """Shift history for one employee, most recent first. Unknown IDs → no shifts."""
    canonical = normalize_employee_id(employee_id, config.EMPLOYEE_ID_CORRECTIONS)
    pairing = pair_shifts(repo.employee_events(canonical, start, end), config)
    return ShiftHistoryResponse(
        employee_id=canonical,
        name=repo.employees.get(canonical, canonical),
        data=[_to_record(s) for s in reversed(pairing.shifts)],
        server_timestamp=_now(),
    )
