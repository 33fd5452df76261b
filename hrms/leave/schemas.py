"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out               → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import LeaveStatus, LeaveType
from hrms.config import settings


def check_leave_dates(
    start_date: date,
    end_date: date,
    is_first_day_half: bool = False,
    is_last_day_half: bool = False,
) -> dict[str, list[str]]:
    """Field errors for a leave date range; empty when the range is valid."""
    errors: dict[str, list[str]] = {}
    if end_date < start_date:
        errors["end_date"] = ["end_date must be on or after start_date"]
    elif (end_date - start_date).days + 1 > settings.MAX_LEAVE_SPAN_DAYS:
        errors["end_date"] = [
            f"A leave request may span at most {settings.MAX_LEAVE_SPAN_DAYS} days"
        ]
    elif start_date == end_date and is_first_day_half and is_last_day_half:
        errors["is_last_day_half"] = [
            "A single-day leave cannot be half on both the first and last day"
        ]
    return errors


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for a new leave request.

    ``employee_id`` defaults to the caller; managers, HR and admins may file
    on someone else's behalf within their scope.
    """

    employee_id: Optional[uuid.UUID] = None
    leave_type: LeaveType
    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    is_first_day_half: bool = False
    is_last_day_half: bool = False
    reason: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _validate_dates(self) -> "LeaveRequestCreate":
        errors = check_leave_dates(
            self.start_date, self.end_date, self.is_first_day_half, self.is_last_day_half,
        )
        if errors:
            raise ValueError(next(iter(errors.values()))[0])
        return self


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Update
# ═════════════════════════════════════════════════════════════════════


class LeaveStatusUpdate(BaseModel):
    status: LeaveStatus
    approver_notes: Optional[str] = Field(None, max_length=2000)


class LeaveDatesUpdate(BaseModel):
    """New range for an existing request; omitted half-day flags are kept."""

    start_date: date
    end_date: date
    is_first_day_half: Optional[bool] = None
    is_last_day_half: Optional[bool] = None

    @model_validator(mode="after")
    def _validate_dates(self) -> "LeaveDatesUpdate":
        errors = check_leave_dates(self.start_date, self.end_date)
        if errors:
            raise ValueError(next(iter(errors.values()))[0])
        return self


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    status: LeaveStatus
    start_date: date
    end_date: date
    is_first_day_half: bool = False
    is_last_day_half: bool = False
    total_days: Decimal
    reason: Optional[str] = None
    approved_by_id: Optional[uuid.UUID] = None
    approver_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    approver_notes: Optional[str] = None
    balance_deducted: Optional[Decimal] = None
    created_by_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: uuid.UUID
    leave_type: LeaveType
    balance: Decimal
    accrued_ytd: Decimal = Decimal("0")
    used_ytd: Decimal = Decimal("0")
    last_updated: Optional[datetime] = None


class LeaveBalanceSet(BaseModel):
    """Set the days available for one leave type; HR and admins only."""

    leave_type: LeaveType
    balance: Decimal = Field(..., ge=0, max_digits=6, decimal_places=1)


class LeaveAccrualRequest(BaseModel):
    """Credit every non-terminated employee; omitted fields use the
    configured defaults."""

    leave_type: Optional[LeaveType] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=6, decimal_places=1)


class LeaveAccrualResult(BaseModel):
    leave_type: LeaveType
    amount: Decimal
    employees_credited: int
