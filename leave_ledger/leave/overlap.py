"""Overlap index — date-range conflict lookup over a user's leave requests."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import LeaveStatus
from leave_ledger.leave.models import LeaveRequest


async def find_conflict(
    db: AsyncSession,
    user_id: uuid.UUID,
    start: date,
    end: date,
    statuses: Iterable[LeaveStatus],
    exclude_request_id: Optional[uuid.UUID] = None,
) -> Optional[LeaveRequest]:
    """Return the earliest request of *user_id* in *statuses* overlapping ``[start, end]``."""
    query = (
        select(LeaveRequest)
        .where(
            LeaveRequest.user_id == user_id,
            LeaveRequest.status.in_(list(statuses)),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        .order_by(LeaveRequest.start_date)
        .limit(1)
    )
    if exclude_request_id is not None:
        query = query.where(LeaveRequest.id != exclude_request_id)

    result = await db.execute(query)
    return result.scalars().first()


async def has_conflict(
    db: AsyncSession,
    user_id: uuid.UUID,
    start: date,
    end: date,
    statuses: Iterable[LeaveStatus],
    exclude_request_id: Optional[uuid.UUID] = None,
) -> bool:
    """True if any request of *user_id* in *statuses* overlaps ``[start, end]``."""
    conflict = await find_conflict(
        db, user_id, start, end, statuses, exclude_request_id,
    )
    return conflict is not None
