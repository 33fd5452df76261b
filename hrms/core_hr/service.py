"""Core HR service layer — async CRUD + business logic.

Uses:
  - ``paginate()`` from hrms.common.pagination
  - the access-control policy from hrms.auth.policy
  - ``NotFoundException / ConflictError / DependencyConflict`` from hrms.common.exceptions
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.auth.models import User
from hrms.auth.policy import Resource, require, scope_for
from hrms.auth.schemas import Actor
from hrms.common.constants import ALL, DEPARTMENT, OWN, EmploymentStatus
from hrms.common.exceptions import (
    ConflictError,
    DependencyConflict,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.compliance.models import ComplianceRecord
from hrms.core_hr.models import Department, Employee
from hrms.core_hr.schemas import (
    HR_ONLY_FIELDS,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
)
from hrms.leave.models import LeaveRequest

logger = logging.getLogger(__name__)


def employee_resource(employee: Employee) -> Resource:
    return Resource(employee_id=employee.id, department_id=employee.department_id)


async def load_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
    """Fetch an employee or raise 404."""
    employee = await db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundException("Employee", str(employee_id))
    return employee


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _ensure_references(
        db: AsyncSession,
        department_id: Optional[uuid.UUID],
        manager_id: Optional[uuid.UUID],
    ) -> None:
        errors: dict[str, list[str]] = {}
        if department_id is not None and await db.get(Department, department_id) is None:
            errors["department_id"] = ["Department not found."]
        if manager_id is not None and await db.get(Employee, manager_id) is None:
            errors["manager_id"] = ["Manager not found."]
        if errors:
            raise ValidationException(errors)

    @staticmethod
    async def _ensure_unique(
        db: AsyncSession,
        *,
        email: Optional[str] = None,
        employee_code: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        for field, value in (("email", email), ("employee_code", employee_code)):
            if value is None:
                continue
            query = select(Employee.id).where(getattr(Employee, field) == value)
            if exclude_id is not None:
                query = query.where(Employee.id != exclude_id)
            if (await db.execute(query)).scalar() is not None:
                raise ConflictError(field, value)

    # ── List (paginated, scoped by role) ────────────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        actor: Actor,
        pagination: PaginationParams,
        *,
        department_id: Optional[uuid.UUID] = None,
        employment_status: Optional[EmploymentStatus] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        scope = scope_for(actor, "employee:read")
        query = select(Employee).order_by(Employee.last_name, Employee.first_name)

        if scope == OWN:
            query = query.where(Employee.id == actor.employee_id)
        elif scope == DEPARTMENT:
            if department_id is not None and department_id != actor.department_id:
                raise ForbiddenException("You do not have access to this department.")
            query = query.where(
                or_(
                    Employee.department_id == actor.department_id,
                    Employee.id == actor.employee_id,
                )
            )
        elif scope != ALL:
            raise ForbiddenException()

        if department_id is not None:
            query = query.where(Employee.department_id == department_id)
        if employment_status is not None:
            query = query.where(Employee.employment_status == employment_status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Employee.first_name.ilike(pattern),
                    Employee.last_name.ilike(pattern),
                    Employee.email.ilike(pattern),
                    Employee.employee_code.ilike(pattern),
                )
            )

        return await paginate(
            db, query, pagination,
            model=Employee, transform=EmployeeResponse.model_validate,
        )

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        actor: Actor,
        employee_id: uuid.UUID,
    ) -> EmployeeResponse:
        employee = await load_employee(db, employee_id)
        require(
            actor, "employee:read", employee_resource(employee),
            "You do not have access to this employee record.",
        )
        return EmployeeResponse.model_validate(employee)

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        actor: Actor,
        data: EmployeeCreate,
    ) -> EmployeeResponse:
        require(actor, "employee:create", detail="You do not have permission to create employees.")
        await EmployeeService._ensure_references(db, data.department_id, data.manager_id)
        await EmployeeService._ensure_unique(
            db, email=data.email, employee_code=data.employee_code,
        )

        employee = Employee(**data.model_dump())
        db.add(employee)
        await db.flush()

        logger.info(
            "[AUDIT] Employee %s (%s) created by %s (%s)",
            employee.id, employee.full_name, actor.name, actor.id,
        )
        return EmployeeResponse.model_validate(employee)

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        actor: Actor,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
    ) -> EmployeeResponse:
        employee = await load_employee(db, employee_id)
        resource = employee_resource(employee)
        require(
            actor, "employee:update", resource,
            "You do not have access to this employee record.",
        )

        changes = data.model_dump(exclude_unset=True)
        hr_changes = {
            k for k in HR_ONLY_FIELDS & changes.keys()
            if changes[k] != getattr(employee, k)
        }
        if hr_changes:
            require(
                actor, "employee:manage", resource,
                f"Only admin or HR may change: {', '.join(sorted(hr_changes))}.",
            )

        if changes.get("manager_id") == employee.id:
            raise ValidationException({"manager_id": ["An employee cannot manage themselves."]})
        await EmployeeService._ensure_references(
            db, changes.get("department_id"), changes.get("manager_id"),
        )
        await EmployeeService._ensure_unique(
            db, email=changes.get("email"), exclude_id=employee.id,
        )

        hire = changes.get("hire_date", employee.hire_date)
        term = changes.get("termination_date", employee.termination_date)
        if hire and term and term < hire:
            raise ValidationException(
                {"termination_date": ["termination_date must be on or after hire_date"]}
            )

        for field, value in changes.items():
            setattr(employee, field, value)
        await db.flush()

        logger.info("[AUDIT] Employee %s updated by %s (%s)", employee.id, actor.name, actor.id)
        return EmployeeResponse.model_validate(employee)

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_employee(
        db: AsyncSession,
        actor: Actor,
        employee_id: uuid.UUID,
    ) -> None:
        """Hard delete; refused while anything still references the employee."""
        employee = await load_employee(db, employee_id)
        require(
            actor, "employee:delete", employee_resource(employee),
            "You do not have permission to delete employees.",
        )

        dependents = {
            "subordinates": select(func.count()).select_from(Employee).where(
                Employee.manager_id == employee.id
            ),
            "attendance records": select(func.count()).select_from(AttendanceRecord).where(
                AttendanceRecord.employee_id == employee.id
            ),
            "leave requests": select(func.count()).select_from(LeaveRequest).where(
                LeaveRequest.employee_id == employee.id
            ),
            "compliance records": select(func.count()).select_from(ComplianceRecord).where(
                ComplianceRecord.employee_id == employee.id
            ),
        }
        blocking = []
        for label, query in dependents.items():
            count = (await db.execute(query)).scalar_one()
            if count:
                blocking.append(f"{count} {label}")
        if blocking:
            raise DependencyConflict(
                "Employee",
                f"Cannot delete employee with linked records: {', '.join(blocking)}.",
            )

        logger.info(
            "[AUDIT] Employee %s (%s) deleted by %s (%s)",
            employee.id, employee.full_name, actor.name, actor.id,
        )
        await db.delete(employee)
        await db.flush()


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """Async CRUD operations for departments."""

    @staticmethod
    async def _employee_count(db: AsyncSession, department_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count()).select_from(Employee).where(
                Employee.department_id == department_id
            )
        )
        return result.scalar_one()

    @staticmethod
    async def _to_response(db: AsyncSession, department: Department) -> DepartmentResponse:
        out = DepartmentResponse.model_validate(department)
        out.employee_count = await DepartmentService._employee_count(db, department.id)
        return out

    @staticmethod
    async def _load(db: AsyncSession, department_id: uuid.UUID) -> Department:
        department = await db.get(Department, department_id)
        if department is None:
            raise NotFoundException("Department", str(department_id))
        return department

    @staticmethod
    async def _ensure_name_free(
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Department.id).where(func.lower(Department.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Department.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise ConflictError("name", name)

    @staticmethod
    async def list_departments(db: AsyncSession, actor: Actor) -> list[DepartmentResponse]:
        require(actor, "department:read")
        result = await db.execute(select(Department).order_by(Department.name))
        return [
            await DepartmentService._to_response(db, dept)
            for dept in result.scalars().all()
        ]

    @staticmethod
    async def get_department(
        db: AsyncSession,
        actor: Actor,
        department_id: uuid.UUID,
    ) -> DepartmentResponse:
        require(actor, "department:read")
        department = await DepartmentService._load(db, department_id)
        return await DepartmentService._to_response(db, department)

    @staticmethod
    async def create_department(
        db: AsyncSession,
        actor: Actor,
        data: DepartmentCreate,
    ) -> DepartmentResponse:
        require(actor, "department:create", detail="You do not have permission to create departments.")
        await DepartmentService._ensure_name_free(db, data.name)
        if data.manager_id is not None and await db.get(Employee, data.manager_id) is None:
            raise ValidationException({"manager_id": ["Employee not found for manager assignment."]})

        department = Department(**data.model_dump())
        db.add(department)
        await db.flush()

        logger.info("[AUDIT] Department %r created by %s (%s)", department.name, actor.name, actor.id)
        return await DepartmentService._to_response(db, department)

    @staticmethod
    async def update_department(
        db: AsyncSession,
        actor: Actor,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
    ) -> DepartmentResponse:
        require(actor, "department:update", detail="You do not have permission to update departments.")
        department = await DepartmentService._load(db, department_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("name") and changes["name"] != department.name:
            await DepartmentService._ensure_name_free(db, changes["name"], exclude_id=department.id)
        if changes.get("manager_id") is not None and await db.get(Employee, changes["manager_id"]) is None:
            raise ValidationException({"manager_id": ["Employee not found for manager assignment."]})

        for field, value in changes.items():
            setattr(department, field, value)
        await db.flush()

        logger.info("[AUDIT] Department %s updated by %s (%s)", department.id, actor.name, actor.id)
        return await DepartmentService._to_response(db, department)

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        actor: Actor,
        department_id: uuid.UUID,
    ) -> None:
        require(actor, "department:delete", detail="You do not have permission to delete departments.")
        department = await DepartmentService._load(db, department_id)

        employee_count = await DepartmentService._employee_count(db, department.id)
        user_count = (
            await db.execute(
                select(func.count()).select_from(User).where(User.department_id == department.id)
            )
        ).scalar_one()
        if employee_count or user_count:
            raise DependencyConflict(
                "Department",
                f"Cannot delete department with {employee_count} employee(s) "
                f"and {user_count} user(s) assigned. Reassign them first.",
            )

        logger.info(
            "[AUDIT] Department %r (%s) deleted by %s (%s)",
            department.name, department.id, actor.name, actor.id,
        )
        await db.delete(department)
        await db.flush()
