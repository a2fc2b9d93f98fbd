"""Enums and constants for Leave Ledger — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum

from leave_ledger.config import settings


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    hr = "hr"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    unpaid = "unpaid"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class AuditAction(str, enum.Enum):
    created = "created"
    edited = "edited"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# Inclusive [min, max] bounds for balance-tracked leave types.
# Types missing here (unpaid) are never bounds-checked nor deducted.
BALANCE_BOUNDS: dict[LeaveType, tuple[int, int]] = {
    LeaveType.annual: (0, settings.ANNUAL_LEAVE_MAX),
    LeaveType.sick: (0, settings.SICK_LEAVE_MAX),
}

# Statuses that hold a reservation against the owner's ledger
RESERVING_STATUSES: frozenset[LeaveStatus] = frozenset(
    {LeaveStatus.pending, LeaveStatus.approved}
)

# Statuses a reviewer may move a request to
REVIEW_STATUSES: frozenset[LeaveStatus] = frozenset(
    {LeaveStatus.approved, LeaveStatus.rejected}
)

# ── Misc constants ──────────────────────────────────────────────────

DATE_FORMAT = "%Y-%m-%d"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
