"""Reports router — HR-only CSV downloads."""

import io
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.auth.dependencies import require_role
from leave_ledger.auth.schemas import Actor
from leave_ledger.common.constants import DATE_FORMAT, LeaveStatus, LeaveType, UserRole
from leave_ledger.database import get_db
from leave_ledger.reports.service import ReportService

router = APIRouter(prefix="", tags=["reports"])


def _csv_response(content: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.StringIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ── GET /leaves.csv ─────────────────────────────────────────────────

@router.get("/leaves.csv")
async def leave_report(
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None, alias="type"),
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    role: Optional[UserRole] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Detailed leave report filtered by status, type, start-date window and role."""
    content = await ReportService.leave_report(
        db,
        status=status,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
        role=role,
        user_id=user_id,
    )
    today = datetime.now(timezone.utc).strftime(DATE_FORMAT)
    return _csv_response(content, f"leave-report-{today}.csv")


# ── GET /balances.csv ───────────────────────────────────────────────

@router.get("/balances.csv")
async def balances_report(
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Current balances for every user."""
    content = await ReportService.balances_report(db)
    return _csv_response(content, "leave-balances-report.csv")


# ── GET /role-analysis.csv ──────────────────────────────────────────

@router.get("/role-analysis.csv")
async def role_analysis(
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Role-wise headcount and balance totals/averages."""
    content = await ReportService.role_analysis(db)
    return _csv_response(content, "role-analysis-report.csv")


# ── GET /monthly-trends.csv ─────────────────────────────────────────

@router.get("/monthly-trends.csv")
async def monthly_trends(
    year: Optional[int] = Query(None, ge=1970, le=3000),
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Requests per month and role for one year (default: current year)."""
    target_year = year or datetime.now(timezone.utc).year
    content = await ReportService.monthly_trends(db, year=target_year)
    return _csv_response(content, f"monthly-trends-{target_year}.csv")


# ── GET /employee-directory.csv ─────────────────────────────────────

@router.get("/employee-directory.csv")
async def employee_directory(
    actor: Actor = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    content = await ReportService.employee_directory(db)
    return _csv_response(content, "employee-directory.csv")
