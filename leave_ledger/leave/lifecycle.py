"""Leave request lifecycle — apply, edit, review, cancel as atomic units.

Each public operation:
  1. validates its input (no I/O),
  2. opens a SAVEPOINT on the caller's session,
  3. re-reads the request and owner rows under lock,
  4. consults the authority model and the overlap index,
  5. moves days through the balance ledger,
  6. updates the request and appends one audit entry,
  7. flushes, so the request, the balance and the audit entry land together.

Any exception inside the savepoint rolls back every mutation of that
operation. A lost-update race (``StaleDataError`` from the version
columns) is retried a bounded number of times before it is reported as
``ConcurrentModification``; business-rule failures are never retried.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from leave_ledger.auth.schemas import Actor
from leave_ledger.common.constants import REVIEW_STATUSES, AuditAction, LeaveStatus, LeaveType
from leave_ledger.common.exceptions import (
    ConcurrentModification,
    DuplicatePending,
    Forbidden,
    InvalidRange,
    MissingFields,
    NotFound,
    OverlapConflict,
)
from leave_ledger.config import settings
from leave_ledger.leave import authority, ledger
from leave_ledger.leave.audit import append_audit_entry
from leave_ledger.leave.calendar import days_between
from leave_ledger.leave.models import LeaveRequest
from leave_ledger.leave.overlap import find_conflict
from leave_ledger.leave.schemas import AuditEntryOut, LeaveRequestOut, LeaveRequestPayload, UserBrief
from leave_ledger.users.models import User

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _LeaveFields:
    """A payload that passed required-field and range validation."""

    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str
    emergency_contact: str
    work_handover: str


def _validate_payload(data: LeaveRequestPayload) -> _LeaveFields:
    missing = [
        name
        for name in ("leave_type", "start_date", "end_date", "reason")
        if getattr(data, name) in (None, "")
    ]
    if data.reason is not None and not data.reason.strip() and "reason" not in missing:
        missing.append("reason")
    if missing:
        raise MissingFields(missing)

    if data.leave_type == LeaveType.sick and not (data.emergency_contact or "").strip():
        raise MissingFields(
            ["emergency_contact"],
            detail="Emergency contact is required for sick leave.",
        )

    if data.start_date > data.end_date:
        raise InvalidRange(data.start_date, data.end_date)

    return _LeaveFields(
        leave_type=data.leave_type,
        start_date=data.start_date,
        end_date=data.end_date,
        reason=data.reason.strip(),
        emergency_contact=(
            data.emergency_contact.strip() if data.leave_type == LeaveType.sick else ""
        ),
        work_handover=(data.work_handover or "").strip(),
    )


def build_request_out(req: LeaveRequest, *, owner: Optional[User] = None) -> LeaveRequestOut:
    """Build LeaveRequestOut from ORM, adding calendar and business day counts."""
    out = LeaveRequestOut.model_validate(req, from_attributes=True)
    out.total_days = days_between(req.start_date, req.end_date)
    out.business_days = days_between(req.start_date, req.end_date, business_days_only=True)
    owner = owner or req.owner
    if owner is not None:
        out.owner = UserBrief.model_validate(owner)
    out.audit_trail = [AuditEntryOut.model_validate(e) for e in req.audit_trail]
    return out


async def run_atomic(
    db: AsyncSession,
    entity_type: str,
    entity_id: object,
    operation: Callable[[], Awaitable[T]],
) -> T:
    """Run *operation* in a savepoint, retrying detected lost updates.

    Business errors propagate on the first failure; only ``StaleDataError``
    is retried, up to ``LIFECYCLE_MAX_RETRIES`` attempts in total.
    """
    attempts = max(1, settings.LIFECYCLE_MAX_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            async with db.begin_nested():
                result = await operation()
                await db.flush()
                return result
        except StaleDataError:
            logger.warning(
                "concurrent modification on %s %s (attempt %d/%d)",
                entity_type, entity_id, attempt, attempts,
            )
    raise ConcurrentModification(entity_type, entity_id)


class RequestLifecycle:
    """Atomic leave operations: apply, edit, update status, cancel."""

    # ─────────────────────────────────────────────────────────────────
    # Row loading
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def lock_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if user is None:
            raise NotFound("User", str(user_id))
        return user

    @staticmethod
    async def lock_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .with_for_update(of=LeaveRequest)
            .execution_options(populate_existing=True)
        )
        req = result.unique().scalars().first()
        if req is None:
            raise NotFound("LeaveRequest", str(request_id))
        return req

    # ─────────────────────────────────────────────────────────────────
    # Apply
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def apply(
        db: AsyncSession,
        actor: Actor,
        data: LeaveRequestPayload,
        *,
        owner_id: Optional[uuid.UUID] = None,
    ) -> LeaveRequestOut:
        """File a new pending request and reserve its days.

        Raises MissingFields, InvalidRange, OverlapConflict (vs. approved
        requests) or InsufficientBalance; on any failure nothing is created
        and no balance moves.
        """
        owner_id = owner_id or actor.id
        authority.can_create(actor.id, owner_id).raise_if_denied()
        fields = _validate_payload(data)

        async def _apply() -> LeaveRequestOut:
            user = await RequestLifecycle.lock_user(db, owner_id)
            days = days_between(fields.start_date, fields.end_date)

            conflict = await find_conflict(
                db, owner_id, fields.start_date, fields.end_date, {LeaveStatus.approved},
            )
            if conflict is not None:
                raise OverlapConflict(conflict.id)

            ledger.reserve(user, fields.leave_type, days)
            reserved = days if ledger.is_bounded(fields.leave_type) else 0

            req = LeaveRequest(
                owner=user,
                leave_type=fields.leave_type,
                start_date=fields.start_date,
                end_date=fields.end_date,
                reason=fields.reason,
                emergency_contact=fields.emergency_contact,
                work_handover=fields.work_handover,
                status=LeaveStatus.pending,
                reserved_days=reserved,
                hr_override=False,
                comments="",
            )
            db.add(req)
            append_audit_entry(
                req,
                action=AuditAction.created,
                actor_id=actor.id,
                meta={
                    "type": fields.leave_type,
                    "startDate": fields.start_date,
                    "endDate": fields.end_date,
                    "reason": fields.reason,
                    "emergencyContact": fields.emergency_contact,
                    "workHandover": fields.work_handover,
                    "days": days,
                    "balanceChange": -reserved,
                },
            )
            await db.flush()
            logger.info(
                "leave request %s created for user %s: %s x%d",
                req.id, owner_id, fields.leave_type.value, days,
            )
            return build_request_out(req, owner=user)

        return await run_atomic(db, "User", owner_id, _apply)

    # ─────────────────────────────────────────────────────────────────
    # Edit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def edit(
        db: AsyncSession,
        actor: Actor,
        request_id: uuid.UUID,
        data: LeaveRequestPayload,
    ) -> LeaveRequestOut:
        """Replace type/dates/details of the actor's own pending request.

        The original reservation is swapped for the new one in a single
        ledger step, so only the resulting balance has to be valid.
        Overlap with an approved request raises
        OverlapConflict, with another pending request DuplicatePending.
        """
        fields = _validate_payload(data)

        async def _edit() -> LeaveRequestOut:
            req = await RequestLifecycle.lock_request(db, request_id)
            authority.decide(actor.role, actor.id, req, LeaveStatus.pending).raise_if_denied()
            user = await RequestLifecycle.lock_user(db, req.user_id)

            old_type = req.leave_type
            old_days = days_between(req.start_date, req.end_date)
            new_days = days_between(fields.start_date, fields.end_date)

            approved = await find_conflict(
                db, req.user_id, fields.start_date, fields.end_date,
                {LeaveStatus.approved}, exclude_request_id=req.id,
            )
            if approved is not None:
                raise OverlapConflict(approved.id)

            pending = await find_conflict(
                db, req.user_id, fields.start_date, fields.end_date,
                {LeaveStatus.pending}, exclude_request_id=req.id,
            )
            if pending is not None:
                raise DuplicatePending(pending.id)

            ledger.rebook(user, old_type, req.reserved_days, fields.leave_type, new_days)

            req.leave_type = fields.leave_type
            req.start_date = fields.start_date
            req.end_date = fields.end_date
            req.reason = fields.reason
            req.emergency_contact = fields.emergency_contact
            req.work_handover = fields.work_handover
            req.reserved_days = new_days if ledger.is_bounded(fields.leave_type) else 0

            append_audit_entry(
                req,
                action=AuditAction.edited,
                actor_id=actor.id,
                meta={
                    "type": fields.leave_type,
                    "startDate": fields.start_date,
                    "endDate": fields.end_date,
                    "reason": fields.reason,
                    "emergencyContact": fields.emergency_contact,
                    "workHandover": fields.work_handover,
                    "balanceChange": {
                        "oldType": old_type,
                        "oldDays": old_days,
                        "newType": fields.leave_type,
                        "newDays": new_days,
                    },
                },
            )
            await db.flush()
            logger.info(
                "leave request %s edited by %s: %s x%d -> %s x%d",
                req.id, actor.id, old_type.value, old_days,
                fields.leave_type.value, new_days,
            )
            return build_request_out(req, owner=user)

        return await run_atomic(db, "LeaveRequest", request_id, _edit)

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject / HR override
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_status(
        db: AsyncSession,
        actor: Actor,
        request_id: uuid.UUID,
        target_status: LeaveStatus,
        comment: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Apply a manager decision or an HR override.

        Rejecting releases whatever the request still holds. Approving has
        no balance effect, except when HR re-approves a rejected request,
        which reserves its days again. Approving a request whose dates overlap
        another approved request raises OverlapConflict. Repeating the
        current status moves no days.
        """
        target_status = LeaveStatus(target_status)
        if target_status not in REVIEW_STATUSES:
            raise Forbidden(f"Reviewers can only approve or reject (got '{target_status.value}').")

        async def _review() -> LeaveRequestOut:
            req = await RequestLifecycle.lock_request(db, request_id)
            decision = authority.decide(actor.role, actor.id, req, target_status)
            decision.raise_if_denied()
            user = await RequestLifecycle.lock_user(db, req.user_id)

            previous = req.status
            if target_status == LeaveStatus.approved and previous != LeaveStatus.approved:
                conflict = await find_conflict(
                    db, req.user_id, req.start_date, req.end_date,
                    {LeaveStatus.approved}, exclude_request_id=req.id,
                )
                if conflict is not None:
                    raise OverlapConflict(conflict.id)

            balance_change = 0
            if target_status == LeaveStatus.rejected and previous != LeaveStatus.rejected:
                ledger.release(user, req.leave_type, req.reserved_days)
                balance_change = req.reserved_days
                req.reserved_days = 0
            elif target_status == LeaveStatus.approved and previous == LeaveStatus.rejected:
                days = days_between(req.start_date, req.end_date)
                ledger.reserve(user, req.leave_type, days)
                if ledger.is_bounded(req.leave_type):
                    req.reserved_days = days
                    balance_change = -days

            req.status = target_status
            req.comments = comment or ""
            req.reviewed_by = actor.id
            if decision.hr_override:
                req.hr_override = True

            append_audit_entry(
                req,
                action=AuditAction(target_status.value),
                actor_id=actor.id,
                meta={
                    "comments": comment or "",
                    "balanceChange": balance_change,
                    "previousStatus": previous,
                    "hrOverride": decision.hr_override,
                },
            )
            await db.flush()
            logger.info(
                "leave request %s %s -> %s by %s (%s)%s",
                req.id, previous.value, target_status.value, actor.id,
                actor.role.value, " [hr override]" if decision.hr_override else "",
            )
            return build_request_out(req, owner=user)

        return await run_atomic(db, "LeaveRequest", request_id, _review)

    # ─────────────────────────────────────────────────────────────────
    # Cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel(
        db: AsyncSession,
        actor: Actor,
        request_id: uuid.UUID,
    ) -> LeaveRequestOut:
        """Withdraw the actor's own pending or approved request and restore its days."""

        async def _cancel() -> LeaveRequestOut:
            req = await RequestLifecycle.lock_request(db, request_id)
            authority.decide(actor.role, actor.id, req, LeaveStatus.cancelled).raise_if_denied()
            user = await RequestLifecycle.lock_user(db, req.user_id)

            released = req.reserved_days
            ledger.release(user, req.leave_type, released)
            req.reserved_days = 0
            previous = req.status
            req.status = LeaveStatus.cancelled

            append_audit_entry(
                req,
                action=AuditAction.cancelled,
                actor_id=actor.id,
                meta={"balanceChange": released, "previousStatus": previous},
            )
            await db.flush()
            logger.info("leave request %s cancelled by %s (+%d)", req.id, actor.id, released)
            return build_request_out(req, owner=user)

        return await run_atomic(db, "LeaveRequest", request_id, _cancel)
