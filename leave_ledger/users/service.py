"""User service — balance views, HR balance corrections, team listing and
employee management."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.auth.schemas import Actor
from leave_ledger.common.constants import BALANCE_BOUNDS, RESERVING_STATUSES, LeaveType, UserRole
from leave_ledger.common.exceptions import DuplicateEmail, NotFound
from leave_ledger.common.pagination import PaginationMeta, PaginationParams, paginate
from leave_ledger.leave import ledger
from leave_ledger.leave.lifecycle import RequestLifecycle, run_atomic
from leave_ledger.leave.models import LeaveRequest
from leave_ledger.users.models import User
from leave_ledger.users.schemas import (
    BalanceAdjustRequest,
    BalanceOut,
    EmployeeCountOut,
    EmployeeOut,
    EmployeeUpdate,
    TeamMemberOut,
)

logger = logging.getLogger(__name__)

# Roles that count as staff in directory listings and headcounts
STAFF_ROLES = (UserRole.employee, UserRole.manager)


class UserService:
    """Balance and team queries, administrative balance adjustment and
    employee record maintenance."""

    # ── Balances ────────────────────────────────────────────────────

    @staticmethod
    async def get_balance(db: AsyncSession, user_id: uuid.UUID) -> BalanceOut:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalars().first()
        if user is None:
            raise NotFound("User", str(user_id))
        return BalanceOut.model_validate(user)

    @staticmethod
    async def list_balances(
        db: AsyncSession,
        params: PaginationParams,
    ) -> tuple[list[BalanceOut], PaginationMeta]:
        """All users' balances, ordered by name (HR view)."""
        query = select(User).order_by(User.name)
        rows, meta = await paginate(db, query, params, model=User)
        return [BalanceOut.model_validate(u) for u in rows], meta

    @staticmethod
    async def held_days(db: AsyncSession, user_id: uuid.UUID, leave_type: LeaveType) -> int:
        """Days of *leave_type* currently reserved by the user's open requests."""
        result = await db.execute(
            select(func.coalesce(func.sum(LeaveRequest.reserved_days), 0)).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.leave_type == leave_type,
                LeaveRequest.status.in_(RESERVING_STATUSES),
            )
        )
        return int(result.scalar_one())

    @staticmethod
    async def _balance_ceiling(
        db: AsyncSession,
        user_id: uuid.UUID,
        leave_type: LeaveType,
    ) -> Optional[int]:
        if not ledger.is_bounded(leave_type):
            return None
        _, high = BALANCE_BOUNDS[leave_type]
        return high - await UserService.held_days(db, user_id, leave_type)

    @staticmethod
    async def adjust_balance(
        db: AsyncSession,
        actor: Actor,
        user_id: uuid.UUID,
        body: BalanceAdjustRequest,
    ) -> BalanceOut:
        """Shift or set one balance, clamped into the type's bounds.

        The upper bound is lowered by the days still held by the user's
        pending and approved requests of that type, so those requests can
        always be rejected or cancelled afterwards.
        """

        async def _adjust() -> BalanceOut:
            user = await RequestLifecycle.lock_user(db, user_id)
            before = ledger.get_balance(user, body.leave_type)
            ceiling = await UserService._balance_ceiling(db, user_id, body.leave_type)
            after = ledger.adjust(
                user, body.leave_type, delta=body.delta, value=body.value, ceiling=ceiling,
            )
            await db.flush()
            logger.info(
                "%s balance of user %s adjusted by %s: %s -> %s (%s)",
                body.leave_type.value, user_id, actor.id, before, after,
                body.reason or "no reason given",
            )
            return BalanceOut.model_validate(user)

        return await run_atomic(db, "User", user_id, _adjust)

    # ── Team ────────────────────────────────────────────────────────

    @staticmethod
    async def list_team(db: AsyncSession, manager_id: uuid.UUID) -> list[TeamMemberOut]:
        """Direct reports of *manager_id*."""
        result = await db.execute(
            select(User).where(User.manager_id == manager_id).order_by(User.name)
        )
        return [TeamMemberOut.model_validate(u) for u in result.scalars().all()]

    # ── Employee directory ──────────────────────────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        params: PaginationParams,
    ) -> tuple[list[EmployeeOut], PaginationMeta]:
        """Employees and managers, ordered by name. HR accounts are not listed."""
        query = select(User).where(User.role.in_(STAFF_ROLES)).order_by(User.name)
        rows, meta = await paginate(db, query, params, model=User)
        return [EmployeeOut.model_validate(u) for u in rows], meta

    @staticmethod
    async def employee_count(db: AsyncSession) -> EmployeeCountOut:
        result = await db.execute(
            select(func.count()).select_from(User).where(User.role.in_(STAFF_ROLES))
        )
        return EmployeeCountOut(count=result.scalar_one())

    @staticmethod
    async def list_managers(db: AsyncSession) -> list[EmployeeOut]:
        result = await db.execute(
            select(User).where(User.role == UserRole.manager).order_by(User.name)
        )
        return [EmployeeOut.model_validate(u) for u in result.scalars().all()]

    @staticmethod
    async def get_employee(db: AsyncSession, user_id: uuid.UUID) -> EmployeeOut:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalars().first()
        if user is None:
            raise NotFound("User", str(user_id))
        return EmployeeOut.model_validate(user)

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        actor: Actor,
        user_id: uuid.UUID,
        data: EmployeeUpdate,
    ) -> EmployeeOut:
        """Partial-update an employee record.

        Raises DuplicateEmail when the new address belongs to someone else,
        NotFound for an unknown manager, and OutOfRange when a balance
        would leave its bounds or drop the room held by open requests.
        Promoting a user to manager clears their own manager link.
        """
        changes = data.model_dump(exclude_unset=True)

        async def _update() -> EmployeeOut:
            user = await RequestLifecycle.lock_user(db, user_id)
            if not changes:
                return EmployeeOut.model_validate(user)

            email = changes.get("email")
            if email is not None and email != user.email:
                taken = await db.execute(
                    select(User.id).where(User.email == email, User.id != user_id)
                )
                if taken.first() is not None:
                    raise DuplicateEmail(email)
                user.email = email

            if changes.get("name"):
                user.name = changes["name"]
            if changes.get("role") is not None:
                user.role = changes["role"]

            if "manager_id" in changes:
                manager_id = changes["manager_id"]
                if user.role == UserRole.manager:
                    manager_id = None
                if manager_id is not None:
                    found = await db.execute(select(User.id).where(User.id == manager_id))
                    if found.first() is None:
                        raise NotFound("User", str(manager_id))
                user.manager_id = manager_id

            for leave_type, field in (
                (LeaveType.annual, "annual_balance"),
                (LeaveType.sick, "sick_balance"),
            ):
                if changes.get(field) is not None:
                    ceiling = await UserService._balance_ceiling(db, user_id, leave_type)
                    ledger.assign(user, leave_type, changes[field], ceiling=ceiling)

            await db.flush()
            logger.info(
                "user %s updated by %s: %s",
                user_id, actor.id, _describe(changes),
            )
            return EmployeeOut.model_validate(user)

        return await run_atomic(db, "User", user_id, _update)


def _describe(changes: dict[str, Any]) -> str:
    return ", ".join(
        f"{k}={getattr(v, 'value', v)}" for k, v in sorted(changes.items())
    )
