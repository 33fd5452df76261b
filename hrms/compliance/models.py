"""Compliance ORM model: ComplianceRecord (licenses and certifications)."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.constants import ComplianceStatus
from hrms.database import Base


class ComplianceRecord(Base):
    __tablename__ = "compliance_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="CASCADE"),
    )
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    license_type: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    license_number: Mapped[Optional[str]] = mapped_column(sa.String(100))
    issue_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    expiration_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    status: Mapped[ComplianceStatus] = mapped_column(
        sa.Enum(ComplianceStatus, name="compliance_status"),
        nullable=False,
        default=ComplianceStatus.pending,
    )
    is_hipaa_sensitive: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    verified_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    verification_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<ComplianceRecord {self.license_type} {self.status}>"
