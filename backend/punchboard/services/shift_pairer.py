"""
FIFO pairing of punch-ins and punch-outs into shifts.

Each punch-in at the cursor is closed by the very next punch-out after it.
This is easy to explain to an operator, but a double punch-in pairs the
first In with the Out and skips the second one (a "stray" In); that is a
known limitation, not something to patch with heuristics.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from punchboard.core.config import Settings, settings
from punchboard.core.rounding import round_half_up
from punchboard.schemas.punch import PunchEvent, Shift
from punchboard.services.compliance import is_on_site
from punchboard.services.repository import group_by_employee


class PairingResult(BaseModel):
    shifts: list[Shift] = Field(default_factory=list)
    # Outs reached by the cursor that no skipped In can account for
    orphan_outs: list[PunchEvent] = Field(default_factory=list)
    # Ins jumped over while searching for the Out of an earlier In
    stray_ins: list[PunchEvent] = Field(default_factory=list)

    @property
    def closed_shifts(self) -> list[Shift]:
        return [s for s in self.shifts if not s.is_open]

    @property
    def open_shifts(self) -> list[Shift]:
        return [s for s in self.shifts if s.is_open]


def _make_shift(start: PunchEvent, end: PunchEvent | None, config: Settings) -> Shift:
    if end is None:
        return Shift(
            start=start,
            on_site_start=is_on_site(start.distance_m, config),
        )
    seconds = (end.timestamp - start.timestamp).total_seconds()
    return Shift(
        start=start,
        end=end,
        duration_minutes=int(round_half_up(seconds / 60)),
        on_site_start=is_on_site(start.distance_m, config),
        on_site_end=is_on_site(end.distance_m, config),
    )


def pair_shifts(events: Sequence[PunchEvent], config: Settings = settings) -> PairingResult:
    """
    Pair one employee's chronological events.

    An unmatched In becomes an open shift and does not block later pairing.
    Outs at the cursor are never paired; each one is an orphan unless an
    earlier stray In is still unaccounted for.
    """
    result = PairingResult()
    unexplained_strays = 0
    i = 0
    n = len(events)

    while i < n:
        event = events[i]

        if event.punch_type == "out":
            if unexplained_strays:
                unexplained_strays -= 1
            else:
                result.orphan_outs.append(event)
            i += 1
            continue

        j = i + 1
        while j < n and events[j].punch_type != "out":
            j += 1

        if j < n:
            skipped = [e for e in events[i + 1:j] if e.punch_type == "in"]
            result.stray_ins.extend(skipped)
            unexplained_strays += len(skipped)
            result.shifts.append(_make_shift(event, events[j], config))
            i = j + 1
        else:
            result.shifts.append(_make_shift(event, None, config))
            i += 1

    return result


def pair_by_employee(
    events: Sequence[PunchEvent], config: Settings = settings
) -> dict[str, PairingResult]:
    return {
        employee_id: pair_shifts(employee_events, config)
        for employee_id, employee_events in group_by_employee(events).items()
    }


def closed_minutes(shifts: Sequence[Shift]) -> float:
    """Exact paired minutes; open shifts contribute nothing."""
    return sum(
        (s.end.timestamp - s.start.timestamp).total_seconds() / 60
        for s in shifts
        if s.end is not None
    )
