"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

BASE_ERROR_URI = "https://hrms.local/errors"

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        self.extra = extra or {}
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409 — unique-constraint / duplicate."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class LeaveConflictError(AppException):
    """409 — leave dates collide with logged attendance or another leave.

    ``conflicts`` holds the offending records, already serialised, so the
    client can show the user what is in the way.
    """

    def __init__(
        self,
        detail: str,
        conflicts: list[dict[str, Any]],
        *,
        kind: str,
    ) -> None:
        self.conflicts = conflicts
        self.kind = kind
        super().__init__(
            status_code=409,
            error_type=f"{kind}-conflict",
            title="Leave Conflict",
            detail=detail,
            extra={"conflicts": conflicts},
        )


class DependencyConflict(AppException):
    """409 — entity still referenced by dependents; delete refused."""

    def __init__(self, entity_type: str, reason: str) -> None:
        super().__init__(
            status_code=409,
            error_type="has-dependents",
            title=f"{entity_type} In Use",
            detail=reason,
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(
        self,
        errors: dict[str, list[str]],
        detail: str = "One or more fields failed validation.",
    ) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail=detail,
            errors=errors,
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    body.update(exc.extra)
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    logger.info(
        "%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.title,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


def _field_name(loc: tuple) -> str:
    # First segment is the source ("body", "query", "path")
    parts = [str(p) for p in loc[1:]] or [str(p) for p in loc]
    return ".".join(parts) or "unknown"


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        field_errors.setdefault(_field_name(err.get("loc", ())), []).append(
            err.get("msg", "Invalid value")
        )
    problem = ValidationException(field_errors, detail="Request validation failed.")
    return await _handle_app_exception(request, problem)


async def _handle_integrity_error(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Constraint violations that slipped past the service-level checks."""
    logger.warning(
        "Integrity error on %s %s: %s", request.method, request.url.path, exc.orig,
    )
    problem = AppException(
        status_code=409,
        error_type="integrity-conflict",
        title="Conflict",
        detail="The change conflicts with existing data.",
    )
    return await _handle_app_exception(request, problem)


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _handle_integrity_error)      # type: ignore[arg-type]
