"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Payload / *Request → request bodies (write)
  - *Out                → response bodies (read)
  - *Brief              → compact embedded representations

Request payload fields are optional on purpose: required-field checks are
business rules enforced by the lifecycle so every caller gets the same
``MissingFields`` error.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from leave_ledger.common.constants import AuditAction, LeaveStatus, LeaveType, UserRole


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class UserBrief(BaseModel):
    """Minimal user info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole


class AuditEntryOut(BaseModel):
    """One immutable audit trail entry."""

    model_config = ConfigDict(from_attributes=True)

    position: int
    action: AuditAction
    actor_id: uuid.UUID
    at: datetime
    meta: Optional[dict[str, Any]] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Apply / Edit
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestPayload(BaseModel):
    """Payload for applying for, or editing, a leave request."""

    leave_type: Optional[LeaveType] = Field(None, description="annual | sick | unpaid")
    start_date: Optional[date] = Field(None, description="Leave start date (inclusive)")
    end_date: Optional[date] = Field(None, description="Leave end date (inclusive)")
    reason: Optional[str] = Field(None, max_length=1000)
    emergency_contact: Optional[str] = Field(
        None, max_length=255, description="Required for sick leave"
    )
    work_handover: Optional[str] = Field(None, max_length=2000)


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Review
# ═════════════════════════════════════════════════════════════════════


class LeaveStatusUpdate(BaseModel):
    """Payload for a manager decision or an HR override."""

    status: Literal["approved", "rejected"]
    comments: Optional[str] = Field(None, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str
    emergency_contact: str = ""
    work_handover: str = ""
    status: LeaveStatus
    reserved_days: int
    hr_override: bool = False
    comments: str = ""
    reviewed_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    # Enriched by service
    total_days: int = 0
    business_days: int = 0
    owner: Optional[UserBrief] = None
    audit_trail: list[AuditEntryOut] = Field(default_factory=list)


class LeaveListOut(BaseModel):
    """Paginated list of leave requests."""

    data: list[LeaveRequestOut]
    meta: dict[str, Any]


# ═════════════════════════════════════════════════════════════════════
# Dashboard stats
# ═════════════════════════════════════════════════════════════════════


class LeaveStatsOut(BaseModel):
    """Counters for the role-scoped leave dashboard."""

    pending_requests: int = 0
    approved_this_month: int = 0
    rejected_this_month: int = 0
    total_used_days: int = 0
    team_requests: int = 0
    team_members: int = 0
    total_employees: int = 0
