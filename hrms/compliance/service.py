"""Compliance service layer — CRUD, HIPAA redaction and the expiration sweep."""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Optional, Union

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.policy import Resource, can_view_sensitive_compliance, require, scope_for
from hrms.auth.schemas import Actor
from hrms.common.constants import ALL, DEPARTMENT, OWN, ComplianceStatus
from hrms.common.exceptions import ForbiddenException, NotFoundException, ValidationException
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.compliance.models import ComplianceRecord
from hrms.compliance.schemas import (
    ComplianceCreate,
    ComplianceOut,
    ComplianceRedactedOut,
    ComplianceUpdate,
    ExpirationSweepResult,
)
from hrms.config import settings
from hrms.core_hr.models import Department, Employee

logger = logging.getLogger(__name__)

ComplianceView = Union[ComplianceOut, ComplianceRedactedOut]


class ComplianceService:
    """Async compliance operations."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _load(db: AsyncSession, record_id: uuid.UUID) -> ComplianceRecord:
        record = await db.get(ComplianceRecord, record_id)
        if record is None:
            raise NotFoundException("ComplianceRecord", str(record_id))
        return record

    @staticmethod
    async def _resource(db: AsyncSession, record: ComplianceRecord) -> Resource:
        department_id = record.department_id
        if department_id is None and record.employee_id is not None:
            department_id = (
                await db.execute(
                    select(Employee.department_id).where(Employee.id == record.employee_id)
                )
            ).scalar()
        return Resource(employee_id=record.employee_id, department_id=department_id)

    @staticmethod
    def present(actor: Actor, record: ComplianceRecord) -> ComplianceView:
        """Full record, or the redacted view for sensitive rows the actor
        may not see in full."""
        if record.is_hipaa_sensitive and not can_view_sensitive_compliance(actor):
            return ComplianceRedactedOut.model_validate(record)
        return ComplianceOut.model_validate(record)

    @staticmethod
    async def _ensure_references(
        db: AsyncSession,
        employee_id: Optional[uuid.UUID],
        department_id: Optional[uuid.UUID],
    ) -> None:
        errors: dict[str, list[str]] = {}
        if employee_id is not None and await db.get(Employee, employee_id) is None:
            errors["employee_id"] = ["Employee not found."]
        if department_id is not None and await db.get(Department, department_id) is None:
            errors["department_id"] = ["Department not found."]
        if errors:
            raise ValidationException(errors)

    # ── Read ────────────────────────────────────────────────────────

    @staticmethod
    async def list_records(
        db: AsyncSession,
        actor: Actor,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        department_id: Optional[uuid.UUID] = None,
        status: Optional[ComplianceStatus] = None,
        is_hipaa_sensitive: Optional[bool] = None,
    ) -> PaginatedResponse:
        scope = scope_for(actor, "compliance:read")
        query = select(ComplianceRecord).order_by(ComplianceRecord.expiration_date.asc())

        if scope == OWN:
            query = query.where(ComplianceRecord.employee_id == actor.employee_id)
        elif scope == DEPARTMENT:
            dept_members = select(Employee.id).where(
                Employee.department_id == actor.department_id
            )
            query = query.where(
                or_(
                    ComplianceRecord.department_id == actor.department_id,
                    ComplianceRecord.employee_id.in_(dept_members),
                    ComplianceRecord.employee_id == actor.employee_id,
                )
            )
        elif scope != ALL:
            raise ForbiddenException()

        if employee_id is not None:
            query = query.where(ComplianceRecord.employee_id == employee_id)
        if department_id is not None:
            query = query.where(ComplianceRecord.department_id == department_id)
        if status is not None:
            query = query.where(ComplianceRecord.status == status)
        if is_hipaa_sensitive is not None:
            query = query.where(ComplianceRecord.is_hipaa_sensitive.is_(is_hipaa_sensitive))

        return await paginate(
            db, query, pagination,
            model=ComplianceRecord,
            transform=lambda record: ComplianceService.present(actor, record),
        )

    @staticmethod
    async def get_record(
        db: AsyncSession,
        actor: Actor,
        record_id: uuid.UUID,
    ) -> ComplianceView:
        record = await ComplianceService._load(db, record_id)
        require(actor, "compliance:read", await ComplianceService._resource(db, record))
        return ComplianceService.present(actor, record)

    # ── Write (admin / HR) ──────────────────────────────────────────

    @staticmethod
    async def create_record(
        db: AsyncSession,
        actor: Actor,
        data: ComplianceCreate,
    ) -> ComplianceOut:
        require(actor, "compliance:write")
        await ComplianceService._ensure_references(db, data.employee_id, data.department_id)

        record = ComplianceRecord(**data.model_dump())
        db.add(record)
        await db.flush()

        logger.info(
            "[AUDIT] Compliance record %s (%s) created by %s (%s)",
            record.id, record.license_type, actor.name, actor.id,
        )
        return ComplianceOut.model_validate(record)

    @staticmethod
    async def update_record(
        db: AsyncSession,
        actor: Actor,
        record_id: uuid.UUID,
        data: ComplianceUpdate,
    ) -> ComplianceOut:
        require(actor, "compliance:write")
        record = await ComplianceService._load(db, record_id)

        changes = data.model_dump(exclude_unset=True)
        verified = changes.pop("verified", None)
        for field, value in changes.items():
            setattr(record, field, value)
        if record.issue_date and record.expiration_date and record.expiration_date < record.issue_date:
            raise ValidationException(
                {"expiration_date": ["expiration_date must be on or after issue_date"]}
            )
        if verified:
            record.verified_by_id = actor.id
            record.verification_date = date.today()
        await db.flush()

        logger.info("[AUDIT] Compliance record %s updated by %s (%s)", record.id, actor.name, actor.id)
        return ComplianceOut.model_validate(record)

    @staticmethod
    async def delete_record(
        db: AsyncSession,
        actor: Actor,
        record_id: uuid.UUID,
    ) -> None:
        require(actor, "compliance:write")
        record = await ComplianceService._load(db, record_id)
        logger.info(
            "[AUDIT] Compliance record %s (%s) deleted by %s (%s)",
            record.id, record.license_type, actor.name, actor.id,
        )
        await db.delete(record)
        await db.flush()

    # ── Expiration sweep ────────────────────────────────────────────

    @staticmethod
    async def run_expiration_sweep(
        db: AsyncSession,
        today: Optional[date] = None,
    ) -> ExpirationSweepResult:
        """Re-derive date-driven statuses.

        * expiration before today                 → expired
        * expiration within the warning window    → expiring_soon
        * expiring_soon pushed past the window    → valid

        Bulk UPDATEs: records already loaded in this session are not refreshed.
        """
        today = today or date.today()
        soon = today + timedelta(days=settings.COMPLIANCE_EXPIRING_SOON_DAYS)

        expired = await db.execute(
            update(ComplianceRecord)
            .where(
                ComplianceRecord.expiration_date < today,
                ComplianceRecord.status != ComplianceStatus.expired,
            )
            .values(status=ComplianceStatus.expired)
            .execution_options(synchronize_session=False)
        )
        expiring = await db.execute(
            update(ComplianceRecord)
            .where(
                ComplianceRecord.expiration_date >= today,
                ComplianceRecord.expiration_date < soon,
                ComplianceRecord.status.not_in(
                    [ComplianceStatus.expiring_soon, ComplianceStatus.expired]
                ),
            )
            .values(status=ComplianceStatus.expiring_soon)
            .execution_options(synchronize_session=False)
        )
        reverted = await db.execute(
            update(ComplianceRecord)
            .where(
                ComplianceRecord.expiration_date >= soon,
                ComplianceRecord.status == ComplianceStatus.expiring_soon,
            )
            .values(status=ComplianceStatus.valid)
            .execution_options(synchronize_session=False)
        )

        result = ExpirationSweepResult(
            updated_to_expired=expired.rowcount or 0,
            updated_to_expiring_soon=expiring.rowcount or 0,
            reverted_to_valid=reverted.rowcount or 0,
        )
        logger.info(
            "Compliance expiration sweep: %d expired, %d expiring soon, %d reverted to valid",
            result.updated_to_expired, result.updated_to_expiring_soon, result.reverted_to_valid,
        )
        return result
