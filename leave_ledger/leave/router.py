"""Leave router — apply, edit, review, cancel, list, detail, stats.

All endpoints require authentication. Every write delegates to
RequestLifecycle, which owns the transaction and the authority checks.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.auth.dependencies import get_current_actor
from leave_ledger.auth.schemas import Actor
from leave_ledger.common.constants import LeaveStatus, LeaveType
from leave_ledger.common.pagination import PaginationParams
from leave_ledger.common.rate_limit import APPLY_RATE_LIMIT, limiter
from leave_ledger.database import get_db
from leave_ledger.leave.lifecycle import RequestLifecycle
from leave_ledger.leave.schemas import (
    LeaveListOut,
    LeaveRequestOut,
    LeaveRequestPayload,
    LeaveStatsOut,
    LeaveStatusUpdate,
)
from leave_ledger.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST /apply ─────────────────────────────────────────────────────

@router.post("/apply", response_model=LeaveRequestOut, status_code=201)
@limiter.limit(APPLY_RATE_LIMIT)
async def apply_leave(
    request: Request,
    body: LeaveRequestPayload,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Apply for leave. Validates fields, range, overlap and balance."""
    return await RequestLifecycle.apply(db, actor, body)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=LeaveListOut)
async def list_leaves(
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None, alias="type"),
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    params: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Own requests for employees, team requests for managers, all for HR."""
    return await LeaveService.list_requests(
        db,
        actor,
        params,
        status=status,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
    )


# ── GET /stats ──────────────────────────────────────────────────────

@router.get("/stats", response_model=LeaveStatsOut)
async def leave_stats(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Dashboard counters scoped to the caller's role."""
    return await LeaveService.get_stats(db, actor)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{request_id}", response_model=LeaveRequestOut)
async def get_leave(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Single leave request including its audit trail."""
    return await LeaveService.get_request(db, actor, request_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{request_id}", response_model=LeaveRequestOut)
async def edit_leave(
    request_id: uuid.UUID,
    body: LeaveRequestPayload,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Edit your own pending request; the reservation is recomputed."""
    return await RequestLifecycle.edit(db, actor, request_id, body)


# ── PUT /{id}/status ────────────────────────────────────────────────

@router.put("/{request_id}/status", response_model=LeaveRequestOut)
async def update_leave_status(
    request_id: uuid.UUID,
    body: LeaveStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject. Managers decide pending requests; HR may override."""
    return await RequestLifecycle.update_status(
        db, actor, request_id, LeaveStatus(body.status), body.comments,
    )


# ── PUT /{id}/cancel ────────────────────────────────────────────────

@router.put("/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_leave(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Cancel your own pending or approved request and restore its days."""
    return await RequestLifecycle.cancel(db, actor, request_id)
