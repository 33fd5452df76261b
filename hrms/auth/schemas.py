"""Auth Pydantic v2 schemas — Actor projection and user read/update bodies."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from hrms.common.constants import UserRole


class Actor(BaseModel):
    """Read-only projection of the authenticated user handed to every service."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    role: UserRole
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    name: str = ""

    @property
    def is_admin_or_hr(self) -> bool:
        return self.role in (UserRole.admin, UserRole.hr_manager)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    role: UserRole
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def _normalise_role(cls, value):
        return UserRole.parse(value)


class UserUpdate(BaseModel):
    """Partial update; unset fields are left untouched."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
