"""Shared test fixtures — async DB, client, auth helpers, seed factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Settings are read at import time; configure them before anything imports hrms
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrms.auth.schemas import Actor
from hrms.common.constants import UserRole
from hrms.config import settings
from hrms.database import Base, get_db
from hrms.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module foreign keys
import hrms.attendance.models  # noqa: F401
import hrms.auth.models  # noqa: F401
import hrms.compliance.models  # noqa: F401
import hrms.core_hr.models  # noqa: F401
import hrms.leave.models  # noqa: F401

from hrms.auth.models import User
from hrms.core_hr.models import Department, Employee

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Seed helpers ────────────────────────────────────────────────────

async def seed_department(db: AsyncSession, *, name: str = "Engineering") -> Department:
    dept = Department(id=uuid.uuid4(), name=name)
    db.add(dept)
    await db.flush()
    return dept


async def seed_employee(
    db: AsyncSession,
    *,
    email: Optional[str] = None,
    first_name: str = "Test",
    last_name: str = "Employee",
    department_id: Optional[uuid.UUID] = None,
    manager_id: Optional[uuid.UUID] = None,
) -> Employee:
    code = uuid.uuid4().hex[:6].upper()
    emp = Employee(
        id=uuid.uuid4(),
        employee_code=f"E-{code}",
        first_name=first_name,
        last_name=last_name,
        email=email or f"emp-{code.lower()}@example.com",
        department_id=department_id,
        manager_id=manager_id,
        hire_date=date(2024, 1, 15),
    )
    db.add(emp)
    await db.flush()
    return emp


async def seed_user(
    db: AsyncSession,
    *,
    role: str = UserRole.employee.value,
    employee: Optional[Employee] = None,
    department_id: Optional[uuid.UUID] = None,
    name: str = "Test User",
    email: Optional[str] = None,
    is_active: bool = True,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
        name=name,
        role=role,
        employee_id=employee.id if employee else None,
        department_id=department_id or (employee.department_id if employee else None),
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    return user


def actor_for(user: User) -> Actor:
    """The Actor the auth dependency would build for *user*."""
    return Actor(
        id=user.id,
        role=UserRole.parse(user.role),
        employee_id=user.employee_id,
        department_id=user.department_id,
        name=user.name,
    )


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, UserRole.parse(user.role))
    return {"Authorization": f"Bearer {token}"}
