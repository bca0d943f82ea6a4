import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

PunchType = Literal["in", "out"]

_ws_re = re.compile(r"\s+")


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    long: float


class PunchEvent(BaseModel):
    """One normalized clock-in / clock-out row. Never mutated after parsing."""

    model_config = ConfigDict(frozen=True)

    employee_id: str
    employee_name: str = ""
    punch_type: PunchType
    timestamp: datetime
    location: str = ""
    manual_location: str = ""
    coordinates: Coordinates | None = None
    distance_m: float | None = None

    @property
    def location_text(self) -> str:
        return self.manual_location or "Unknown"

    @property
    def location_id(self) -> str:
        return location_id_for(self.manual_location)


class Shift(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: PunchEvent
    end: PunchEvent | None = None
    duration_minutes: int | None = None
    on_site_start: bool = False
    on_site_end: bool | None = None

    @property
    def is_open(self) -> bool:
        return self.end is None


def location_id_for(label: str) -> str:
    """'Office  HQ ' → 'OFFICE_HQ'."""
    return _ws_re.sub("_", label.strip()).upper()
