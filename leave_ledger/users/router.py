"""Users router — own balance, HR balance views and adjustment, manager team,
employee directory and record updates."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.auth.dependencies import get_current_actor, require_role
from leave_ledger.auth.schemas import Actor
from leave_ledger.common.constants import UserRole
from leave_ledger.common.pagination import PaginatedResponse, PaginationParams
from leave_ledger.database import get_db
from leave_ledger.users.schemas import (
    BalanceAdjustRequest,
    BalanceOut,
    EmployeeCountOut,
    EmployeeOut,
    EmployeeUpdate,
    TeamMemberOut,
)
from leave_ledger.users.service import UserService

router = APIRouter(prefix="", tags=["users"])


# ── GET /me/balance ─────────────────────────────────────────────────

@router.get("/me/balance", response_model=BalanceOut)
async def my_balance(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """The caller's annual and sick balances."""
    return await UserService.get_balance(db, actor.id)


# ── GET /balances ───────────────────────────────────────────────────

@router.get("/balances", response_model=PaginatedResponse[BalanceOut])
async def all_balances(
    params: PaginationParams = Depends(),
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Every user's balances (HR only)."""
    data, meta = await UserService.list_balances(db, params)
    return PaginatedResponse[BalanceOut](data=data, meta=meta)


# ── PUT /{id}/balance ───────────────────────────────────────────────

@router.put("/{user_id}/balance", response_model=BalanceOut)
async def adjust_balance(
    user_id: uuid.UUID,
    body: BalanceAdjustRequest,
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Administrative balance correction (HR only); result is clamped to bounds."""
    return await UserService.adjust_balance(db, actor, user_id, body)


# ── GET /team ───────────────────────────────────────────────────────

@router.get("/team", response_model=list[TeamMemberOut])
async def my_team(
    actor: Actor = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """The calling manager's direct reports."""
    return await UserService.list_team(db, actor.id)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse[EmployeeOut])
async def list_employees(
    params: PaginationParams = Depends(),
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Employees and managers (HR only)."""
    data, meta = await UserService.list_employees(db, params)
    return PaginatedResponse[EmployeeOut](data=data, meta=meta)


# ── GET /count ──────────────────────────────────────────────────────

@router.get("/count", response_model=EmployeeCountOut)
async def employee_count(
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Number of employees and managers (HR only)."""
    return await UserService.employee_count(db)


# ── GET /managers ───────────────────────────────────────────────────

@router.get("/managers", response_model=list[EmployeeOut])
async def list_managers(
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.list_managers(db)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{user_id}", response_model=EmployeeOut)
async def get_employee(
    user_id: uuid.UUID,
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Single employee record (HR only)."""
    return await UserService.get_employee(db, user_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{user_id}", response_model=EmployeeOut)
async def update_employee(
    user_id: uuid.UUID,
    body: EmployeeUpdate,
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Partial update of name, email, role, manager or balances (HR only)."""
    return await UserService.update_employee(db, actor, user_id, body)
