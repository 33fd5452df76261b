"""Compliance Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import ComplianceStatus


class ComplianceCreate(BaseModel):
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    license_type: str = Field(..., min_length=1, max_length=150)
    license_number: Optional[str] = Field(None, max_length=100)
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None
    status: ComplianceStatus = ComplianceStatus.pending
    is_hipaa_sensitive: bool = False
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _validate(self) -> "ComplianceCreate":
        if self.employee_id is None and self.department_id is None:
            raise ValueError("employee_id or department_id is required")
        if self.issue_date and self.expiration_date and self.expiration_date < self.issue_date:
            raise ValueError("expiration_date must be on or after issue_date")
        return self


class ComplianceUpdate(BaseModel):
    license_type: Optional[str] = Field(None, min_length=1, max_length=150)
    license_number: Optional[str] = Field(None, max_length=100)
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None
    status: Optional[ComplianceStatus] = None
    is_hipaa_sensitive: Optional[bool] = None
    notes: Optional[str] = None
    # Marks the record verified by the caller, today
    verified: Optional[bool] = None


class ComplianceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    license_type: str
    license_number: Optional[str] = None
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None
    status: ComplianceStatus
    is_hipaa_sensitive: bool = False
    notes: Optional[str] = None
    verified_by_id: Optional[uuid.UUID] = None
    verification_date: Optional[date] = None
    redacted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ComplianceRedactedOut(BaseModel):
    """What a reader without HIPAA clearance sees of a sensitive record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    license_type: str
    status: ComplianceStatus
    expiration_date: Optional[date] = None
    is_hipaa_sensitive: bool = True
    redacted: bool = True


class ExpirationSweepResult(BaseModel):
    updated_to_expired: int = 0
    updated_to_expiring_soon: int = 0
    reverted_to_valid: int = 0
