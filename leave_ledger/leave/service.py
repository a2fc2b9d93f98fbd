"""Leave read service — role-scoped listing, detail view and dashboard counts.

All writes go through :class:`leave_ledger.leave.lifecycle.RequestLifecycle`;
this module never mutates state.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.auth.schemas import Actor
from leave_ledger.common.constants import LeaveStatus, LeaveType, UserRole
from leave_ledger.common.exceptions import Forbidden, NotFound
from leave_ledger.common.pagination import PaginationParams, paginate
from leave_ledger.leave.calendar import days_between
from leave_ledger.leave.lifecycle import build_request_out
from leave_ledger.leave.models import LeaveRequest
from leave_ledger.leave.schemas import LeaveListOut, LeaveRequestOut, LeaveStatsOut
from leave_ledger.users.models import User


def _month_bounds(today: date) -> tuple[date, date]:
    first = today.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return first, date.fromordinal(next_first.toordinal() - 1)


class LeaveService:
    """Read-side queries over leave requests."""

    # ─────────────────────────────────────────────────────────────────
    # Scoping
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _team_ids(manager_id: uuid.UUID) -> Select:
        return select(User.id).where(User.manager_id == manager_id)

    @staticmethod
    def scoped_query(actor: Actor) -> Select:
        """Requests visible to *actor*: own (employee), team (manager), all (HR)."""
        query = select(LeaveRequest)
        if actor.role == UserRole.employee:
            query = query.where(LeaveRequest.user_id == actor.id)
        elif actor.role == UserRole.manager:
            query = query.where(LeaveRequest.user_id.in_(LeaveService._team_ids(actor.id)))
        return query

    # ─────────────────────────────────────────────────────────────────
    # List / Detail
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        actor: Actor,
        params: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> LeaveListOut:
        """List leave requests visible to the actor, newest first."""
        query = LeaveService.scoped_query(actor).order_by(LeaveRequest.created_at.desc())

        if status:
            query = query.where(LeaveRequest.status == status)
        if leave_type:
            query = query.where(LeaveRequest.leave_type == leave_type)
        if from_date:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date:
            query = query.where(LeaveRequest.start_date <= to_date)

        rows, meta = await paginate(db, query, params, model=LeaveRequest)
        return LeaveListOut(
            data=[build_request_out(r) for r in rows],
            meta=meta.model_dump(),
        )

    @staticmethod
    async def get_request(
        db: AsyncSession,
        actor: Actor,
        request_id: uuid.UUID,
    ) -> LeaveRequestOut:
        """Single request with its full audit trail.

        Visible to the owner, the owner's manager and HR.
        """
        result = await db.execute(select(LeaveRequest).where(LeaveRequest.id == request_id))
        req = result.scalars().first()
        if req is None:
            raise NotFound("LeaveRequest", str(request_id))

        if actor.role != UserRole.hr and req.user_id != actor.id:
            if not (actor.role == UserRole.manager and req.owner.manager_id == actor.id):
                raise Forbidden("You do not have access to this leave request.")

        return build_request_out(req)

    # ─────────────────────────────────────────────────────────────────
    # Dashboard stats
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        actor: Actor,
        *,
        today: Optional[date] = None,
    ) -> LeaveStatsOut:
        """Role-scoped dashboard counters for the current month."""
        today = today or datetime.now(timezone.utc).date()
        month_start, month_end = _month_bounds(today)

        base = LeaveService.scoped_query(actor)

        async def _count(query: Select) -> int:
            count_q = query.with_only_columns(
                func.count(), maintain_column_froms=True,
            ).order_by(None)
            return (await db.execute(count_q)).scalar_one()

        pending = await _count(base.where(LeaveRequest.status == LeaveStatus.pending))
        approved_this_month = await _count(
            base.where(
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.start_date >= month_start,
                LeaveRequest.start_date <= month_end,
            )
        )
        rejected_this_month = await _count(
            base.where(
                LeaveRequest.status == LeaveStatus.rejected,
                LeaveRequest.created_at >= datetime.combine(month_start, time.min, timezone.utc),
                LeaveRequest.created_at <= datetime.combine(month_end, time.max, timezone.utc),
            )
        )

        approved_ranges = await db.execute(
            base.where(LeaveRequest.status == LeaveStatus.approved)
            .with_only_columns(LeaveRequest.start_date, LeaveRequest.end_date)
        )
        total_used_days = sum(days_between(s, e) for s, e in approved_ranges.all())

        stats = LeaveStatsOut(
            pending_requests=pending,
            approved_this_month=approved_this_month,
            rejected_this_month=rejected_this_month,
            total_used_days=total_used_days,
        )

        if actor.role == UserRole.manager:
            stats.team_requests = await _count(base)
            stats.team_members = (
                await db.execute(
                    select(func.count()).select_from(User).where(User.manager_id == actor.id)
                )
            ).scalar_one()
        elif actor.role == UserRole.hr:
            stats.total_employees = (
                await db.execute(
                    select(func.count()).select_from(User).where(
                        User.role.in_([UserRole.employee, UserRole.manager])
                    )
                )
            ).scalar_one()

        return stats
