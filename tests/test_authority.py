"""Authority model — who may move a request to which status."""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from leave_ledger.common.constants import LeaveStatus, UserRole
from leave_ledger.common.exceptions import (
    Forbidden,
    HRLocked,
    NotCancellable,
    NotEditable,
    SelfApprovalForbidden,
)
from leave_ledger.leave.authority import can_create, decide

OWNER = uuid.uuid4()
REVIEWER = uuid.uuid4()


def _request(status: LeaveStatus = LeaveStatus.pending, hr_override: bool = False):
    return SimpleNamespace(user_id=OWNER, status=status, hr_override=hr_override)


class TestOwnerActions:

    def test_create_only_for_self(self):
        assert can_create(OWNER, OWNER).allowed
        denied = can_create(REVIEWER, OWNER)
        assert not denied.allowed
        assert isinstance(denied.reason, Forbidden)

    def test_owner_can_edit_pending(self):
        assert decide(UserRole.employee, OWNER, _request(), LeaveStatus.pending).allowed

    @pytest.mark.parametrize("status", [LeaveStatus.approved, LeaveStatus.rejected, LeaveStatus.cancelled])
    def test_edit_outside_pending_is_not_editable(self, status):
        decision = decide(UserRole.employee, OWNER, _request(status), LeaveStatus.pending)
        assert isinstance(decision.reason, NotEditable)

    @pytest.mark.parametrize("status", [LeaveStatus.pending, LeaveStatus.approved])
    def test_owner_can_cancel_pending_or_approved(self, status):
        assert decide(UserRole.employee, OWNER, _request(status), LeaveStatus.cancelled).allowed

    @pytest.mark.parametrize("status", [LeaveStatus.rejected, LeaveStatus.cancelled])
    def test_cancel_of_closed_request_is_not_cancellable(self, status):
        decision = decide(UserRole.employee, OWNER, _request(status), LeaveStatus.cancelled)
        assert isinstance(decision.reason, NotCancellable)

    def test_non_owner_cannot_cancel_even_as_hr(self):
        decision = decide(UserRole.hr, REVIEWER, _request(), LeaveStatus.cancelled)
        assert not decision.allowed
        assert type(decision.reason) is Forbidden


class TestReviewerActions:

    @pytest.mark.parametrize("target", [LeaveStatus.approved, LeaveStatus.rejected])
    def test_manager_reviews_pending(self, target):
        decision = decide(UserRole.manager, REVIEWER, _request(), target)
        assert decision.allowed
        assert not decision.hr_override

    def test_manager_cannot_review_own_request(self):
        decision = decide(UserRole.manager, OWNER, _request(), LeaveStatus.approved)
        assert isinstance(decision.reason, SelfApprovalForbidden)

    def test_manager_locked_out_after_hr_override(self):
        decision = decide(
            UserRole.manager, REVIEWER,
            _request(LeaveStatus.approved, hr_override=True),
            LeaveStatus.rejected,
        )
        assert isinstance(decision.reason, HRLocked)

    def test_manager_cannot_revisit_decided_request(self):
        decision = decide(UserRole.manager, REVIEWER, _request(LeaveStatus.approved), LeaveStatus.rejected)
        assert type(decision.reason) is Forbidden

    def test_hr_cannot_be_first_approver(self):
        decision = decide(UserRole.hr, REVIEWER, _request(), LeaveStatus.approved)
        assert type(decision.reason) is Forbidden

    @pytest.mark.parametrize("current", [LeaveStatus.approved, LeaveStatus.rejected])
    def test_hr_overrides_after_manager_decision(self, current):
        decision = decide(UserRole.hr, REVIEWER, _request(current), LeaveStatus.rejected)
        assert decision.allowed
        assert decision.hr_override

    def test_hr_cannot_review_own_request(self):
        decision = decide(UserRole.hr, OWNER, _request(LeaveStatus.approved), LeaveStatus.rejected)
        assert isinstance(decision.reason, SelfApprovalForbidden)

    def test_hr_cannot_touch_cancelled_request(self):
        decision = decide(UserRole.hr, REVIEWER, _request(LeaveStatus.cancelled), LeaveStatus.approved)
        assert not decision.allowed

    def test_employee_cannot_review(self):
        decision = decide(UserRole.employee, REVIEWER, _request(), LeaveStatus.approved)
        assert type(decision.reason) is Forbidden

    def test_raise_if_denied_raises_reason(self):
        decision = decide(UserRole.employee, REVIEWER, _request(), LeaveStatus.approved)
        with pytest.raises(Forbidden):
            decision.raise_if_denied()
