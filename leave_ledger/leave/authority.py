"""Authority model — who may move a leave request to which status.

Pure decision logic with no I/O. The lifecycle consults :func:`decide`
inside its transaction, after re-reading the request, so the decision is
always made against the current status.

Targets:
    pending    owner edits the request (it stays pending)
    cancelled  owner withdraws the request
    approved / rejected  reviewer decision (manager first, HR afterwards)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from leave_ledger.common.constants import REVIEW_STATUSES, LeaveStatus, UserRole
from leave_ledger.common.exceptions import (
    AppException,
    Forbidden,
    HRLocked,
    NotCancellable,
    NotEditable,
    SelfApprovalForbidden,
)

_CANCELLABLE = frozenset({LeaveStatus.pending, LeaveStatus.approved})


class ReviewableRequest(Protocol):
    user_id: uuid.UUID
    status: LeaveStatus
    hr_override: bool


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[AppException] = None
    hr_override: bool = False

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise self.reason


_ALLOW = Decision(allowed=True)


def _deny(reason: AppException) -> Decision:
    return Decision(allowed=False, reason=reason)


def can_create(actor_id: uuid.UUID, owner_id: uuid.UUID) -> Decision:
    """Any role may file leave, but only for themselves."""
    if actor_id != owner_id:
        return _deny(Forbidden("Leave can only be requested for yourself."))
    return _ALLOW


def _decide_owner_action(
    actor_id: uuid.UUID,
    request: ReviewableRequest,
    target_status: LeaveStatus,
) -> Decision:
    if request.user_id != actor_id:
        return _deny(Forbidden("Only the owner can edit or cancel a leave request."))
    if target_status == LeaveStatus.pending:
        if request.status != LeaveStatus.pending:
            return _deny(NotEditable(request.status.value))
        return _ALLOW
    if request.status not in _CANCELLABLE:
        return _deny(NotCancellable(request.status.value))
    return _ALLOW


def _decide_review(
    actor_role: UserRole,
    actor_id: uuid.UUID,
    request: ReviewableRequest,
) -> Decision:
    if actor_role == UserRole.manager:
        if request.user_id == actor_id:
            return _deny(SelfApprovalForbidden())
        if request.hr_override:
            return _deny(HRLocked())
        if request.status != LeaveStatus.pending:
            return _deny(Forbidden(
                f"Managers can only review pending requests (current: {request.status.value})."
            ))
        return _ALLOW

    if actor_role == UserRole.hr:
        if request.user_id == actor_id:
            return _deny(SelfApprovalForbidden())
        if request.status not in REVIEW_STATUSES:
            return _deny(Forbidden("HR can only override after a manager decision."))
        return Decision(allowed=True, hr_override=True)

    return _deny(Forbidden("Employees cannot approve or reject leave requests."))


def decide(
    actor_role: UserRole,
    actor_id: uuid.UUID,
    request: ReviewableRequest,
    target_status: LeaveStatus,
) -> Decision:
    """Allow or deny moving *request* to *target_status* for the given actor."""
    if target_status in (LeaveStatus.pending, LeaveStatus.cancelled):
        return _decide_owner_action(actor_id, request, target_status)
    if target_status in REVIEW_STATUSES:
        return _decide_review(actor_role, actor_id, request)
    return _deny(Forbidden(f"Unsupported target status '{target_status}'."))
