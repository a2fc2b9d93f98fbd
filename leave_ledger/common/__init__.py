"""Common module — shared utilities for Leave Ledger."""

from leave_ledger.common.constants import (
    BALANCE_BOUNDS,
    DATE_FORMAT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    RESERVING_STATUSES,
    REVIEW_STATUSES,
    AuditAction,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from leave_ledger.common.exceptions import (
    AppException,
    ConcurrentModification,
    DuplicateEmail,
    DuplicatePending,
    Forbidden,
    HRLocked,
    InsufficientBalance,
    InvalidRange,
    MissingFields,
    NotCancellable,
    NotEditable,
    NotFound,
    OutOfRange,
    OverlapConflict,
    SelfApprovalForbidden,
    register_exception_handlers,
)
from leave_ledger.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Constants / Enums
    "AuditAction",
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    "BALANCE_BOUNDS",
    "RESERVING_STATUSES",
    "REVIEW_STATUSES",
    "DATE_FORMAT",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConcurrentModification",
    "DuplicateEmail",
    "DuplicatePending",
    "Forbidden",
    "HRLocked",
    "InsufficientBalance",
    "InvalidRange",
    "MissingFields",
    "NotCancellable",
    "NotEditable",
    "NotFound",
    "OutOfRange",
    "OverlapConflict",
    "SelfApprovalForbidden",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
