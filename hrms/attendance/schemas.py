"""Attendance Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import AttendanceStatus


class AttendanceCreate(BaseModel):
    """Log one day. ``employee_id`` defaults to the caller's own record."""

    employee_id: Optional[uuid.UUID] = None
    date: date
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    status: AttendanceStatus = AttendanceStatus.present
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _time_out_needs_time_in(self) -> "AttendanceCreate":
        if self.time_out is not None and self.time_in is None:
            raise ValueError("time_out requires time_in")
        return self


class AttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: date
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    status: AttendanceStatus
    notes: Optional[str] = None
    total_hours: Optional[Decimal] = None
    source_leave_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AttendanceSummary(BaseModel):
    """Per-employee counts over a period.

    ``working_days`` skips weekends; ``attendance_rate`` is a percentage of
    working days minus holidays.
    """

    employee_id: uuid.UUID
    start_date: date
    end_date: date
    working_days: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    half_day: int = 0
    remote: int = 0
    on_leave: int = 0
    holidays: int = 0
    total_hours_worked: Decimal = Decimal("0")
    attendance_rate: Decimal = Decimal("0")
