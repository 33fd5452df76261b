"""Core HR ORM models: Department, Employee.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
Column names match the PostgreSQL schema defined in 001_initial_schema.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import EmploymentStatus, EmploymentType, PayRateType
from hrms.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(Base):
    """Organisational department; ``manager_id`` points at an Employee."""

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", name="fk_dept_manager", ondelete="SET NULL"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    manager: Mapped[Optional[Employee]] = relationship(
        foreign_keys=[manager_id],
    )
    employees: Mapped[list[Employee]] = relationship(
        back_populates="department",
        foreign_keys="Employee.department_id",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Core employee record. Referenced (not owned) by attendance, leave
    and compliance rows; hard-deleted only when nothing references it."""

    __tablename__ = "employees"

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(
        sa.String(20), unique=True, nullable=False,
    )

    # ── Name / contact ──────────────────────────────────────────────
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    phone: Mapped[Optional[str]] = mapped_column(sa.String(20))
    job_title: Mapped[Optional[str]] = mapped_column(sa.String(200))

    # ── Org hierarchy ───────────────────────────────────────────────
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"),
    )

    # ── Employment lifecycle ────────────────────────────────────────
    employment_status: Mapped[EmploymentStatus] = mapped_column(
        sa.Enum(EmploymentStatus, name="employment_status"),
        default=EmploymentStatus.active,
        nullable=False,
    )
    employment_type: Mapped[EmploymentType] = mapped_column(
        sa.Enum(EmploymentType, name="employment_type"),
        default=EmploymentType.full_time,
        nullable=False,
    )
    hire_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    termination_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    # ── Compensation ────────────────────────────────────────────────
    salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    pay_rate_type: Mapped[Optional[PayRateType]] = mapped_column(
        sa.Enum(PayRateType, name="pay_rate_type"),
    )

    # ── Timestamps ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    department: Mapped[Optional[Department]] = relationship(
        back_populates="employees", foreign_keys=[department_id],
    )
    manager: Mapped[Optional[Employee]] = relationship(
        remote_side=[id], foreign_keys=[manager_id],
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return (
            f"<Employee {self.employee_code} "
            f"{self.first_name} {self.last_name}>"
        )
