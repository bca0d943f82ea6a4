"""
Exception detection over one day of punches.

Rules run per employee and independently of each other, so one employee can
raise several exception types on the same day:

  LateArrival        first In after work start + grace period
  OpenSession        In without Out, older than the warning threshold
  PunchOutWithoutIn  Out with no unmatched In before it
  LocationBreach     any punch farther than the warning distance

A rule without the data it needs simply does not fire. The engine only ever
emits status "open"; resolving is somebody else's workflow.
"""

from __future__ import annotations

import hashlib
import logging
import math
from collections import Counter
from collections.abc import Callable, Sequence
from datetime import date, datetime, timezone

from punchboard.core.config import Settings, settings
from punchboard.core.rounding import round_half_up
from punchboard.schemas.punch import PunchEvent
from punchboard.schemas.stats import (
    AttendanceException,
    ExceptionPage,
    ExceptionSeverity,
    ExceptionType,
)
from punchboard.services.repository import EventRepository, at_site, group_by_employee
from punchboard.services.shift_pairer import PairingResult, pair_shifts

logger = logging.getLogger(__name__)

Finding = tuple[ExceptionType, ExceptionSeverity, PunchEvent, str]
Rule = Callable[[Sequence[PunchEvent], PairingResult, datetime, Settings], list[Finding]]

_SEVERITY_RANK: dict[str, int] = {"critical": 0, "warning": 1}


def late_minutes(event: PunchEvent, config: Settings = settings) -> int | None:
    """Minutes after work start, or None while still inside the grace period."""
    punch_minutes = event.timestamp.hour * 60 + event.timestamp.minute
    if punch_minutes <= config.late_threshold_minutes:
        return None
    return punch_minutes - config.work_start_minutes


def _format_distance(distance: float) -> str:
    return f"{distance:.2f}".rstrip("0").rstrip(".")


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def late_arrival_rule(
    events: Sequence[PunchEvent], pairing: PairingResult, now: datetime, config: Settings
) -> list[Finding]:
    first_in = next((e for e in events if e.punch_type == "in"), None)
    if first_in is None:
        return []
    minutes = late_minutes(first_in, config)
    if minutes is None:
        return []
    severity: ExceptionSeverity = "critical" if minutes > 60 else "warning"
    return [("LateArrival", severity, first_in, f"Late arrival by {minutes} minutes")]


def open_session_rule(
    events: Sequence[PunchEvent], pairing: PairingResult, now: datetime, config: Settings
) -> list[Finding]:
    findings: list[Finding] = []
    for shift in pairing.open_shifts:
        hours_open = (now - shift.start.timestamp).total_seconds() / 3600
        if hours_open < config.OPEN_SESSION_WARNING_HOURS:
            continue
        severity: ExceptionSeverity = (
            "critical" if hours_open >= config.OPEN_SESSION_CRITICAL_HOURS else "warning"
        )
        findings.append((
            "OpenSession",
            severity,
            shift.start,
            f"Open session for {int(round_half_up(hours_open))} hours (no punch out)",
        ))
    return findings


def orphan_punch_out_rule(
    events: Sequence[PunchEvent], pairing: PairingResult, now: datetime, config: Settings
) -> list[Finding]:
    return [
        ("PunchOutWithoutIn", "warning", event, "Punch out without preceding punch in")
        for event in pairing.orphan_outs
    ]


def location_breach_rule(
    events: Sequence[PunchEvent], pairing: PairingResult, now: datetime, config: Settings
) -> list[Finding]:
    findings: list[Finding] = []
    for event in events:
        if event.distance_m is None or event.distance_m <= config.WARNING_DISTANCE_M:
            continue
        severity: ExceptionSeverity = (
            "critical" if event.distance_m > config.CRITICAL_DISTANCE_M else "warning"
        )
        findings.append((
            "LocationBreach",
            severity,
            event,
            f"Distance {_format_distance(event.distance_m)}m exceeds threshold",
        ))
    return findings


RULES: tuple[Rule, ...] = (
    late_arrival_rule,
    open_session_rule,
    orphan_punch_out_rule,
    location_breach_rule,
)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _exception_id(
    employee_id: str, exc_type: str, timestamp: datetime, seen: Counter
) -> str:
    """Same (employee, type, punch time) → same ID on every recomputation."""
    key = f"{employee_id}|{exc_type}|{timestamp.isoformat()}"
    digest = hashlib.sha1(key.encode()).hexdigest()[:12].upper()
    seen[key] += 1
    if seen[key] == 1:
        return f"EXC-{digest}"
    return f"EXC-{digest}-{seen[key]}"


def detect_employee_exceptions(
    employee_id: str,
    name: str,
    events: Sequence[PunchEvent],
    now: datetime,
    config: Settings = settings,
    seen: Counter | None = None,
    location_id: str | None = None,
) -> list[AttendanceException]:
    """
    All rules for one employee's chronological events of the window.

    Pairing always sees every site; `location_id` only selects which
    findings are reported (by the site of the punch that triggered them).
    """
    if seen is None:
        seen = Counter()
    pairing = pair_shifts(events, config)
    found: list[AttendanceException] = []
    for rule in RULES:
        for exc_type, severity, event, notes in rule(events, pairing, now, config):
            if not at_site(event, location_id):
                continue
            found.append(
                AttendanceException(
                    id=_exception_id(employee_id, exc_type, event.timestamp, seen),
                    employee_id=employee_id,
                    name=name,
                    type=exc_type,
                    severity=severity,
                    status="open",
                    timestamp=event.timestamp,
                    location_text=event.location_text,
                    distance=event.distance_m,
                    notes=notes,
                )
            )
    return found


def sort_exceptions(items: list[AttendanceException]) -> list[AttendanceException]:
    """Critical first, then most recent first."""
    ordered = sorted(items, key=lambda x: x.timestamp, reverse=True)
    return sorted(ordered, key=lambda x: _SEVERITY_RANK[x.severity])


def detect_exceptions(
    repo: EventRepository,
    day: date,
    now: datetime | None = None,
    location_id: str | None = None,
    config: Settings = settings,
) -> list[AttendanceException]:
    """
    Exceptions for every employee who punched on `day`.

    `now` is local wall-clock time (like the punch timestamps) and only
    matters for the age of open sessions.
    """
    if now is None:
        now = datetime.now()
    events = repo.events_on(day)
    seen: Counter = Counter()

    found: list[AttendanceException] = []
    for employee_id, employee_events in group_by_employee(events).items():
        name = repo.employees.get(employee_id, employee_id)
        found.extend(
            detect_employee_exceptions(
                employee_id, name, employee_events, now, config, seen, location_id
            )
        )

    logger.debug("Detected %d exception(s) for %s", len(found), day.isoformat())
    return sort_exceptions(found)


def paginate_exceptions(
    items: list[AttendanceException],
    page: int = 1,
    limit: int = 20,
    exc_type: ExceptionType | None = None,
    severity: ExceptionSeverity | None = None,
) -> ExceptionPage:
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")
    if exc_type is not None:
        items = [x for x in items if x.type == exc_type]
    if severity is not None:
        items = [x for x in items if x.severity == severity]

    total = len(items)
    offset = (page - 1) * limit
    return ExceptionPage(
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total > 0 else 1,
        items=items[offset: offset + limit],
        server_timestamp=datetime.now(timezone.utc),
    )
