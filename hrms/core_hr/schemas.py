"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response / *Out   → response bodies (read)
  - *Brief             → compact embedded representations
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from hrms.common.constants import EmploymentStatus, EmploymentType, PayRateType


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None


class DepartmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None
    employee_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Payload for creating an employee (admin / HR only)."""

    employee_code: str = Field(..., min_length=1, max_length=20)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    job_title: Optional[str] = Field(None, max_length=200)
    department_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    employment_status: EmploymentStatus = EmploymentStatus.active
    employment_type: EmploymentType = EmploymentType.full_time
    hire_date: date
    termination_date: Optional[date] = None
    salary: Optional[Decimal] = Field(None, ge=0)
    pay_rate_type: Optional[PayRateType] = None

    @model_validator(mode="after")
    def _termination_after_hire(self) -> "EmployeeCreate":
        if self.termination_date and self.termination_date < self.hire_date:
            raise ValueError("termination_date must be on or after hire_date")
        return self


class EmployeeUpdate(BaseModel):
    """Partial update. Fields in ``HR_ONLY_FIELDS`` need admin / HR."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    job_title: Optional[str] = Field(None, max_length=200)
    department_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    employment_status: Optional[EmploymentStatus] = None
    employment_type: Optional[EmploymentType] = None
    hire_date: Optional[date] = None
    termination_date: Optional[date] = None
    salary: Optional[Decimal] = Field(None, ge=0)
    pay_rate_type: Optional[PayRateType] = None


HR_ONLY_FIELDS = frozenset({
    "department_id",
    "manager_id",
    "employment_status",
    "employment_type",
    "hire_date",
    "termination_date",
    "salary",
    "pay_rate_type",
})


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    job_title: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    employment_status: EmploymentStatus
    employment_type: EmploymentType
    hire_date: date
    termination_date: Optional[date] = None
    salary: Optional[Decimal] = None
    pay_rate_type: Optional[PayRateType] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
