"""Tests for common utilities — pagination and RFC 7807 problem bodies."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, Query
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.exceptions import (
    LeaveConflictError,
    NotFoundException,
    register_exception_handlers,
)
from hrms.common.pagination import PaginationParams, paginate
from hrms.core_hr.models import Employee
from tests.conftest import seed_department, seed_employee


class TestPagination:
    """Tests for pagination helper."""

    async def test_paginate_with_sort(self, db: AsyncSession):
        """paginate() with sort parameter applies ORDER BY."""
        dept = await seed_department(db)
        for i in range(5):
            await seed_employee(db, first_name=f"P{i}", department_id=dept.id)

        params = PaginationParams(page=1, page_size=3, sort="-first_name")
        result = await paginate(db, select(Employee), params, model=Employee)

        assert [e.first_name for e in result.data] == ["P4", "P3", "P2"]
        assert result.meta.total == 5
        assert result.meta.has_next is True

    async def test_paginate_page_2(self, db: AsyncSession):
        """paginate() page 2 returns remaining items."""
        for i in range(5):
            await seed_employee(db, first_name=f"Q{i}")

        params = PaginationParams(page=2, page_size=3, sort=None)
        result = await paginate(db, select(Employee), params, model=Employee)

        assert len(result.data) == 2
        assert result.meta.has_prev is True
        assert result.meta.has_next is False

    async def test_unknown_sort_field_ignored(self, db: AsyncSession):
        await seed_employee(db)
        params = PaginationParams(page=1, page_size=10, sort="no_such_column")
        result = await paginate(db, select(Employee), params, model=Employee)
        assert result.meta.total == 1

    async def test_transform_applied(self, db: AsyncSession):
        await seed_employee(db, first_name="Ada")
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(
            db, select(Employee), params, model=Employee, transform=lambda e: e.first_name,
        )
        assert result.data == ["Ada"]

    async def test_paginate_empty_result(self, db: AsyncSession):
        """paginate() with no matching rows returns empty data."""
        query = select(Employee).where(Employee.first_name == "ZZZ_NONEXISTENT")
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, query, params, model=Employee)
        assert len(result.data) == 0
        assert result.meta.total == 0
        assert result.meta.total_pages == 0


class TestProblemDetails:

    @pytest.fixture
    async def problem_client(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/missing")
        async def missing():
            raise NotFoundException("Employee", "42")

        @app.get("/clash")
        async def clash():
            raise LeaveConflictError(
                "Overlaps.", [{"id": "1", "start_date": "2024-07-01"}], kind="leave-overlap",
            )

        @app.get("/dup")
        async def dup():
            raise IntegrityError("INSERT ...", {}, Exception("unique violation"))

        @app.get("/limited")
        async def limited(n: int = Query(..., ge=1)):
            return {"n": n}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac

    async def test_not_found_body(self, problem_client):
        resp = await problem_client.get("/missing")
        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["title"] == "Employee Not Found"
        assert body["instance"] == "/missing"
        assert "conflicts" not in body

    async def test_conflict_carries_conflicts(self, problem_client):
        resp = await problem_client.get("/clash")
        assert resp.status_code == 409
        body = resp.json()
        assert body["type"].endswith("/leave-overlap-conflict")
        assert body["conflicts"] == [{"id": "1", "start_date": "2024-07-01"}]

    async def test_integrity_error_maps_to_409(self, problem_client):
        resp = await problem_client.get("/dup")
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/integrity-conflict")

    async def test_request_validation_lists_fields(self, problem_client):
        resp = await problem_client.get("/limited", params={"n": 0})
        assert resp.status_code == 422
        body = resp.json()
        assert body["detail"] == "Request validation failed."
        assert "n" in body["errors"]
