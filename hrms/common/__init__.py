"""Common module — shared utilities for HRMS."""

from hrms.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    AttendanceStatus,
    ComplianceStatus,
    EmploymentStatus,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from hrms.common.dates import (
    business_days_between,
    date_range,
    intervals_overlap,
    working_days_between,
)
from hrms.common.exceptions import (
    AppException,
    ConflictError,
    DependencyConflict,
    ForbiddenException,
    LeaveConflictError,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Constants / Enums
    "AttendanceStatus",
    "ComplianceStatus",
    "EmploymentStatus",
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    "PERMISSIONS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Dates
    "business_days_between",
    "date_range",
    "intervals_overlap",
    "working_days_between",
    # Exceptions
    "AppException",
    "ConflictError",
    "DependencyConflict",
    "ForbiddenException",
    "LeaveConflictError",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
