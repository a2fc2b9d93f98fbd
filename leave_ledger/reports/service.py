"""Reports service — read-only CSV exports for HR.

Each export renders a committed snapshot into CSV text; nothing here writes
to the database.
"""

from __future__ import annotations

import csv
import io
import uuid
from calendar import month_name
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import DATE_FORMAT, LeaveStatus, LeaveType, UserRole
from leave_ledger.leave.calendar import days_between
from leave_ledger.leave.models import LeaveRequest
from leave_ledger.users.models import User

LEAVE_REPORT_COLUMNS = (
    "Employee", "Email", "Role", "LeaveType", "Status", "StartDate", "EndDate",
    "Duration", "BusinessDays", "Reason", "EmergencyContact", "WorkHandover",
    "Comments", "HROverride", "AppliedDate", "LastUpdated",
)

BALANCE_REPORT_COLUMNS = (
    "Name", "Email", "Role", "Manager", "AnnualLeave", "SickLeave", "TotalLeave", "JoinDate",
)

ROLE_ANALYSIS_COLUMNS = (
    "Role", "EmployeeCount", "TotalAnnualLeave", "TotalSickLeave",
    "AverageAnnualLeave", "AverageSickLeave",
)

MONTHLY_TRENDS_COLUMNS = (
    "Month", "Role", "TotalRequests", "ApprovedRequests", "ApprovalRate",
)

DIRECTORY_COLUMNS = (
    "Name", "Email", "Role", "Manager", "AnnualLeave", "SickLeave", "JoinDate",
)


def _fmt_date(value: Optional[date | datetime]) -> str:
    if value is None:
        return ""
    return value.strftime(DATE_FORMAT)


def _manager_name(user: User, names: dict[uuid.UUID, str]) -> str:
    if user.manager_id is None:
        return "None"
    return names.get(user.manager_id, "Unknown")


async def _users_by_name(db: AsyncSession) -> tuple[Sequence[User], dict[uuid.UUID, str]]:
    result = await db.execute(select(User).order_by(User.name))
    users = result.scalars().all()
    return users, {u.id: u.name for u in users}


def _render_csv(columns: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(columns)
    writer.writerows(rows)
    return output.getvalue()


class ReportService:
    """CSV exports over leave requests and balances."""

    @staticmethod
    async def leave_report(
        db: AsyncSession,
        *,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        role: Optional[UserRole] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> str:
        """Leave requests, newest start date first, with calendar and business day counts."""
        query = (
            select(LeaveRequest)
            .join(LeaveRequest.owner)
            .order_by(LeaveRequest.start_date.desc())
        )
        if status:
            query = query.where(LeaveRequest.status == status)
        if leave_type:
            query = query.where(LeaveRequest.leave_type == leave_type)
        if from_date:
            query = query.where(LeaveRequest.start_date >= from_date)
        if to_date:
            query = query.where(LeaveRequest.start_date <= to_date)
        if user_id:
            query = query.where(LeaveRequest.user_id == user_id)
        elif role:
            query = query.where(User.role == role)

        result = await db.execute(query)
        rows = []
        for req in result.scalars().all():
            rows.append((
                req.owner.name,
                req.owner.email,
                req.owner.role.value,
                req.leave_type.value,
                req.status.value,
                _fmt_date(req.start_date),
                _fmt_date(req.end_date),
                days_between(req.start_date, req.end_date),
                days_between(req.start_date, req.end_date, business_days_only=True),
                req.reason,
                req.emergency_contact or "",
                req.work_handover or "",
                req.comments or "",
                "yes" if req.hr_override else "no",
                _fmt_date(req.created_at),
                _fmt_date(req.updated_at),
            ))
        return _render_csv(LEAVE_REPORT_COLUMNS, rows)

    @staticmethod
    async def balances_report(db: AsyncSession) -> str:
        """Current balances for every user, with their manager's name."""
        users, names = await _users_by_name(db)
        rows = [
            (
                u.name,
                u.email,
                u.role.value,
                _manager_name(u, names),
                u.annual_balance,
                u.sick_balance,
                u.annual_balance + u.sick_balance,
                _fmt_date(u.created_at),
            )
            for u in users
        ]
        return _render_csv(BALANCE_REPORT_COLUMNS, rows)

    @staticmethod
    async def role_analysis(db: AsyncSession) -> str:
        """Per-role headcount with total and average balances."""
        result = await db.execute(
            select(
                User.role,
                func.count(User.id),
                func.sum(User.annual_balance),
                func.sum(User.sick_balance),
                func.avg(User.annual_balance),
                func.avg(User.sick_balance),
            )
            .group_by(User.role)
            .order_by(User.role)
        )
        rows = [
            (
                role.value,
                count,
                int(total_annual or 0),
                int(total_sick or 0),
                f"{float(avg_annual or 0):.2f}",
                f"{float(avg_sick or 0):.2f}",
            )
            for role, count, total_annual, total_sick, avg_annual, avg_sick in result.all()
        ]
        return _render_csv(ROLE_ANALYSIS_COLUMNS, rows)

    @staticmethod
    async def monthly_trends(db: AsyncSession, *, year: int) -> str:
        """Requests filed per month and owner role in *year*, with approval rate."""
        start = datetime(year, 1, 1, tzinfo=timezone.utc)
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        result = await db.execute(
            select(LeaveRequest.created_at, User.role, LeaveRequest.status)
            .join(User, LeaveRequest.user_id == User.id)
            .where(LeaveRequest.created_at >= start, LeaveRequest.created_at < end)
        )

        # (month, role) -> [total, approved]
        buckets: dict[tuple[int, str], list[int]] = defaultdict(lambda: [0, 0])
        for created_at, role, status in result.all():
            bucket = buckets[(created_at.month, role.value)]
            bucket[0] += 1
            if status == LeaveStatus.approved:
                bucket[1] += 1

        rows = [
            (
                month_name[month],
                role,
                total,
                approved,
                f"{approved / total * 100:.2f}%" if total else "0%",
            )
            for (month, role), (total, approved) in sorted(buckets.items())
        ]
        return _render_csv(MONTHLY_TRENDS_COLUMNS, rows)

    @staticmethod
    async def employee_directory(db: AsyncSession) -> str:
        """Every user with role, manager and join date."""
        users, names = await _users_by_name(db)
        rows = [
            (
                u.name,
                u.email,
                u.role.value,
                _manager_name(u, names),
                u.annual_balance,
                u.sick_balance,
                _fmt_date(u.created_at),
            )
            for u in users
        ]
        return _render_csv(DIRECTORY_COLUMNS, rows)
