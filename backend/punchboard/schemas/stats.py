from datetime import datetime
from typing import Literal

from pydantic import BaseModel

ComplianceStatus = Literal["compliant", "warning", "breach", "unknown"]
ExceptionType = Literal["LateArrival", "OpenSession", "PunchOutWithoutIn", "LocationBreach"]
ExceptionSeverity = Literal["warning", "critical"]
ExceptionStatus = Literal["open", "resolved", "dismissed"]


class KPISnapshot(BaseModel):
    active_employees_count: int
    total_working_hours: float
    on_site_compliance_pct: int
    exceptions_count: int
    server_timestamp: datetime


class HourlyBucket(BaseModel):
    hour: str
    punch_in: int
    punch_out: int


class HourlyActivityResponse(BaseModel):
    data: list[HourlyBucket]
    server_timestamp: datetime


class WorkloadEntry(BaseModel):
    employee_id: str
    name: str
    total_hours: float


class TopWorkloadResponse(BaseModel):
    data: list[WorkloadEntry]
    server_timestamp: datetime


class EmployeeLocation(BaseModel):
    employee_id: str
    name: str
    lat: float
    long: float
    status: ComplianceStatus
    timestamp: datetime
    distance: float | None


class LatestLocationsResponse(BaseModel):
    data: list[EmployeeLocation]
    server_timestamp: datetime


class SiteLocation(BaseModel):
    location_id: str
    name: str
    lat: float
    long: float
    distance_threshold: float


class SiteLocationsResponse(BaseModel):
    data: list[SiteLocation]
    server_timestamp: datetime


class ShiftRecord(BaseModel):
    shift_start: datetime
    shift_end: datetime | None
    duration_minutes: int | None
    distance_start: float | None
    distance_end: float | None
    on_site_start: bool
    on_site_end: bool | None


class ShiftHistoryResponse(BaseModel):
    employee_id: str
    name: str
    data: list[ShiftRecord]
    server_timestamp: datetime


class AttendanceException(BaseModel):
    id: str
    employee_id: str
    name: str
    type: ExceptionType
    severity: ExceptionSeverity
    status: ExceptionStatus = "open"
    timestamp: datetime
    location_text: str
    distance: float | None
    notes: str | None


class ExceptionPage(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
    items: list[AttendanceException]
    server_timestamp: datetime
