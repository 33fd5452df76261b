"""Core HR router — Employee and Department API endpoints.

Routes:
    /employees          — List, create employees
    /employees/{id}     — Get, update, delete employee
    /employees/{id}/leave-balance — Get, set leave balances
    /departments        — List, create departments
    /departments/{id}   — Get, update, delete department
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_actor
from hrms.auth.schemas import Actor
from hrms.common.constants import EmploymentStatus
from hrms.common.pagination import PaginationParams
from hrms.core_hr.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
)
from hrms.core_hr.service import DepartmentService, EmployeeService
from hrms.database import get_db
from hrms.leave.schemas import LeaveBalanceOut, LeaveBalanceSet
from hrms.leave.service import LeaveBalanceService


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /employees — List employees ─────────────────────────────────

@employees_router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee code"),
    department_id: Optional[uuid.UUID] = Query(None, description="Filter by department"),
    employment_status: Optional[EmploymentStatus] = Query(None),
):
    """List employees visible to the caller (own / department / all)."""
    result = await EmployeeService.list_employees(
        db,
        actor,
        pagination,
        department_id=department_id,
        employment_status=employment_status,
        search=search,
    )
    return result.model_dump(mode="json")


# ── GET /employees/{id} ─────────────────────────────────────────────

@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return await EmployeeService.get_employee(db, actor, employee_id)


# ── POST /employees — Create employee ──────────────────────────────

@employees_router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Create a new employee record. Requires **admin** or **hr_manager**."""
    employee = await EmployeeService.create_employee(db, actor, body)
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee created successfully.",
    }


# ── PUT /employees/{id} — Update employee ──────────────────────────

@employees_router.put("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Partial update.

    - **employee**: own record, contact fields only
    - **department_manager**: records in own department, contact fields only
    - **hr_manager / admin**: any record, all fields (department transfer included)
    """
    employee = await EmployeeService.update_employee(db, actor, employee_id, body)
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }


# ── DELETE /employees/{id} ──────────────────────────────────────────

@employees_router.delete("/{employee_id}")
async def delete_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Hard delete; 409 while subordinates or linked records exist."""
    await EmployeeService.delete_employee(db, actor, employee_id)
    return {"message": "Employee deleted successfully."}


# ── GET /employees/{id}/leave-balance ──────────────────────────────

@employees_router.get("/{employee_id}/leave-balance", response_model=list[LeaveBalanceOut])
async def get_leave_balance(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Balances per leave type, ordered by type. Types without a row are
    untracked and not listed."""
    return await LeaveBalanceService.get_balances(db, actor, employee_id)


# ── PUT /employees/{id}/leave-balance ──────────────────────────────

@employees_router.put("/{employee_id}/leave-balance")
async def set_leave_balance(
    employee_id: uuid.UUID,
    body: LeaveBalanceSet,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Set the days available for one leave type. Requires **admin** or **hr_manager**."""
    balance = await LeaveBalanceService.set_balance(db, actor, employee_id, body)
    return {
        "data": balance.model_dump(mode="json"),
        "message": "Leave balance updated successfully.",
    }


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("", response_model=list[DepartmentResponse])
async def list_departments(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return await DepartmentService.list_departments(db, actor)


@departments_router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return await DepartmentService.get_department(db, actor, department_id)


@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    department = await DepartmentService.create_department(db, actor, body)
    return {
        "data": department.model_dump(mode="json"),
        "message": "Department created successfully.",
    }


@departments_router.put("/{department_id}")
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    department = await DepartmentService.update_department(db, actor, department_id, body)
    return {
        "data": department.model_dump(mode="json"),
        "message": "Department updated successfully.",
    }


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Admin only; 409 while employees or users are assigned."""
    await DepartmentService.delete_department(db, actor, department_id)
    return {"message": "Department deleted successfully."}
