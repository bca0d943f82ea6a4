"""
Shift pairing and geofence classification tests.

Tests:
  - TestClassifyDistance : status bands, custom thresholds
  - TestPairShifts       : FIFO pairing, open shifts, stray Ins, orphan Outs
"""

from __future__ import annotations

import pytest

from punchboard.core.config import Settings
from punchboard.services.compliance import classify_distance, is_on_site
from punchboard.services.shift_pairer import closed_minutes, pair_by_employee, pair_shifts


class TestClassifyDistance:
    @pytest.mark.parametrize(
        "distance, status",
        [
            (75, "warning"),
            (25, "compliant"),
            (150, "breach"),
            (None, "unknown"),
            (50, "compliant"),
            (100, "warning"),
            (0, "compliant"),
        ],
    )
    def test_default_bands(self, config: Settings, distance, status: str) -> None:
        assert classify_distance(distance, config) == status

    def test_custom_thresholds(self) -> None:
        config = Settings(_env_file=None, COMPLIANT_DISTANCE_M=10, WARNING_DISTANCE_M=20)
        assert classify_distance(15, config) == "warning"
        assert classify_distance(25, config) == "breach"

    def test_is_on_site(self, config: Settings) -> None:
        assert is_on_site(49.9, config)
        assert not is_on_site(51, config)
        assert not is_on_site(None, config)


class TestPairShifts:
    def test_single_in_gives_open_shift(self, config: Settings, make_punch) -> None:
        result = pair_shifts([make_punch("in", "09:00", distance=10)], config)
        assert len(result.shifts) == 1
        shift = result.shifts[0]
        assert shift.is_open
        assert shift.duration_minutes is None
        assert shift.on_site_start is True
        assert shift.on_site_end is None

    def test_full_day(self, config: Settings, make_punch) -> None:
        result = pair_shifts(
            [make_punch("in", "09:00", distance=25), make_punch("out", "17:00", distance=75)],
            config,
        )
        assert len(result.closed_shifts) == 1
        shift = result.shifts[0]
        assert shift.duration_minutes == 480
        assert shift.on_site_start is True
        assert shift.on_site_end is False
        assert closed_minutes(result.shifts) / 60 == 8.0

    def test_lunch_break(self, config: Settings, make_punch) -> None:
        events = [
            make_punch("in", "09:00"),
            make_punch("out", "12:00"),
            make_punch("in", "13:00"),
            make_punch("out", "17:00"),
        ]
        result = pair_shifts(events, config)
        assert [s.duration_minutes for s in result.shifts] == [180, 240]
        assert closed_minutes(result.shifts) / 60 == 7.0
        assert result.orphan_outs == []
        assert result.stray_ins == []

    def test_double_punch_in_pairs_first_in(self, config: Settings, make_punch) -> None:
        events = [make_punch("in", "09:00"), make_punch("in", "09:05"), make_punch("out", "17:00")]
        result = pair_shifts(events, config)
        assert len(result.shifts) == 1
        assert result.shifts[0].start.timestamp.minute == 0
        assert [e.timestamp.minute for e in result.stray_ins] == [5]
        assert result.orphan_outs == []

    def test_out_after_stray_in_is_not_orphan(self, config: Settings, make_punch) -> None:
        events = [
            make_punch("in", "09:00"),
            make_punch("in", "09:05"),
            make_punch("out", "12:00"),
            make_punch("out", "17:00"),
        ]
        result = pair_shifts(events, config)
        assert len(result.shifts) == 1
        assert result.orphan_outs == []

    def test_leading_out_is_orphan(self, config: Settings, make_punch) -> None:
        events = [make_punch("out", "08:00"), make_punch("in", "09:00"), make_punch("out", "17:00")]
        result = pair_shifts(events, config)
        assert [e.timestamp.hour for e in result.orphan_outs] == [8]
        assert len(result.closed_shifts) == 1

    def test_consecutive_outs(self, config: Settings, make_punch) -> None:
        events = [make_punch("in", "09:00"), make_punch("out", "17:00"), make_punch("out", "17:01")]
        result = pair_shifts(events, config)
        assert len(result.shifts) == 1
        assert len(result.orphan_outs) == 1

    def test_open_shift_does_not_block_later_pairs(self, config: Settings, make_punch) -> None:
        events = [make_punch("out", "08:00"), make_punch("in", "09:00")]
        result = pair_shifts(events, config)
        assert len(result.open_shifts) == 1
        assert len(result.orphan_outs) == 1

    def test_duration_rounds_half_up(self, config: Settings, make_punch) -> None:
        start = make_punch("in", "09:00")
        end = make_punch("out", "09:01").model_copy(
            update={"timestamp": start.timestamp.replace(second=30)}
        )
        assert pair_shifts([start, end], config).shifts[0].duration_minutes == 1

    def test_no_shift_ends_before_it_starts(self, config: Settings, make_punch) -> None:
        events = [
            make_punch("in", "08:00"),
            make_punch("in", "08:30"),
            make_punch("out", "10:00"),
            make_punch("out", "10:30"),
            make_punch("out", "11:00"),
            make_punch("in", "12:00"),
            make_punch("out", "18:00"),
            make_punch("in", "19:00"),
        ]
        for shift in pair_shifts(events, config).shifts:
            if shift.end is not None:
                assert shift.end.timestamp >= shift.start.timestamp
                assert shift.duration_minutes >= 0

    def test_empty(self, config: Settings) -> None:
        result = pair_shifts([], config)
        assert result.shifts == [] and result.orphan_outs == [] and result.stray_ins == []

    def test_pair_by_employee(self, config: Settings, make_punch) -> None:
        events = [
            make_punch("in", "09:00", employee_id="A"),
            make_punch("in", "09:10", employee_id="B"),
            make_punch("out", "17:00", employee_id="A"),
        ]
        pairings = pair_by_employee(events, config)
        assert len(pairings["A"].closed_shifts) == 1
        assert len(pairings["B"].open_shifts) == 1
