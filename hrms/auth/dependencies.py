"""Auth dependencies — JWT validation and the current-actor projection."""

from __future__ import annotations

import uuid

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import User
from hrms.auth.schemas import Actor
from hrms.common.constants import UserRole
from hrms.config import settings
from hrms.core_hr.models import Employee
from hrms.database import get_db


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_actor(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Validate the JWT, load the active User and project it into an Actor.

    The role is read from the User row, not the token, so a role change
    takes effect on the next request.
    """
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type", "access") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject.")

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active.is_(True))
    )
    user = result.scalars().first()
    if user is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    # A linked employee's department wins over the user's own column
    department_id = user.department_id
    if user.employee_id is not None:
        emp_dept = await db.execute(
            select(Employee.department_id).where(Employee.id == user.employee_id)
        )
        department_id = emp_dept.scalar() or department_id

    actor = Actor(
        id=user.id,
        role=UserRole.parse(user.role),
        employee_id=user.employee_id,
        department_id=department_id,
        name=user.name,
    )
    request.state.actor = actor
    return actor
