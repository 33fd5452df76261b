"""Compliance router — license / certification records and the expiration sweep."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_actor
from hrms.auth.policy import require
from hrms.auth.schemas import Actor
from hrms.common.constants import ComplianceStatus
from hrms.common.pagination import PaginationParams
from hrms.compliance.schemas import ComplianceCreate, ComplianceUpdate, ExpirationSweepResult
from hrms.compliance.service import ComplianceService
from hrms.database import get_db

router = APIRouter(prefix="", tags=["compliance"])


@router.get("")
async def list_compliance_records(
    employee_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    status: Optional[ComplianceStatus] = Query(None),
    is_hipaa_sensitive: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Sensitive records come back redacted unless the caller is admin / HR."""
    result = await ComplianceService.list_records(
        db,
        actor,
        pagination,
        employee_id=employee_id,
        department_id=department_id,
        status=status,
        is_hipaa_sensitive=is_hipaa_sensitive,
    )
    return result.model_dump(mode="json")


# NOTE: defined before /{record_id} so "expirations" is not parsed as an id.
@router.post("/expirations/run", response_model=ExpirationSweepResult)
async def run_expiration_sweep(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    require(actor, "compliance:write")
    return await ComplianceService.run_expiration_sweep(db)


@router.get("/{record_id}")
async def get_compliance_record(
    record_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    record = await ComplianceService.get_record(db, actor, record_id)
    return record.model_dump(mode="json")


@router.post("", status_code=201)
async def create_compliance_record(
    body: ComplianceCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    record = await ComplianceService.create_record(db, actor, body)
    return {
        "data": record.model_dump(mode="json"),
        "message": "Compliance record created successfully.",
    }


@router.put("/{record_id}")
async def update_compliance_record(
    record_id: uuid.UUID,
    body: ComplianceUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    record = await ComplianceService.update_record(db, actor, record_id, body)
    return {
        "data": record.model_dump(mode="json"),
        "message": "Compliance record updated successfully.",
    }


@router.delete("/{record_id}")
async def delete_compliance_record(
    record_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await ComplianceService.delete_record(db, actor, record_id)
    return {"message": "Compliance record deleted successfully."}
