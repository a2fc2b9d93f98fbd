"""Balance ledger — the only place leave balances are debited or credited.

Every status change that moves days flows through :func:`reserve` or
:func:`release`, and an edit swaps one reservation for another with
:func:`rebook`. HR corrections outside the request lifecycle go through
:func:`adjust` and :func:`assign`. All of them operate on an already-loaded
``User`` inside the caller's transaction and never flush.
"""

from __future__ import annotations

import logging
from typing import Optional

from leave_ledger.common.constants import BALANCE_BOUNDS, LeaveType
from leave_ledger.common.exceptions import InsufficientBalance, OutOfRange
from leave_ledger.users.models import User

logger = logging.getLogger(__name__)

_BALANCE_COLUMNS: dict[LeaveType, str] = {
    LeaveType.annual: "annual_balance",
    LeaveType.sick: "sick_balance",
}


def is_bounded(leave_type: LeaveType) -> bool:
    """Whether *leave_type* draws from a tracked balance."""
    return leave_type in _BALANCE_COLUMNS


def get_balance(user: User, leave_type: LeaveType) -> Optional[int]:
    """Current balance, or ``None`` for unbounded types."""
    column = _BALANCE_COLUMNS.get(leave_type)
    if column is None:
        return None
    return getattr(user, column)


def _check_bounds(leave_type: LeaveType, value: int, ceiling: Optional[int] = None) -> None:
    low, high = BALANCE_BOUNDS[leave_type]
    if ceiling is not None:
        high = min(high, ceiling)
    if not low <= value <= high:
        raise OutOfRange(
            leave_type.value,
            f"{leave_type.value} balance must stay within [{low}, {high}] (got {value}).",
        )


def _set_balance(user: User, leave_type: LeaveType, value: int) -> None:
    _check_bounds(leave_type, value)
    setattr(user, _BALANCE_COLUMNS[leave_type], value)


def reserve(user: User, leave_type: LeaveType, days: int) -> Optional[int]:
    """Debit *days* from the user's balance and return the new balance.

    Unpaid leave always succeeds without touching any balance.
    """
    if days < 0:
        raise OutOfRange(leave_type.value, f"Cannot reserve a negative day count ({days}).")
    current = get_balance(user, leave_type)
    if current is None:
        return None
    if current < days:
        raise InsufficientBalance(leave_type.value, current, days)
    _set_balance(user, leave_type, current - days)
    logger.debug("reserved %d %s day(s) for user %s", days, leave_type.value, user.id)
    return current - days


def release(user: User, leave_type: LeaveType, days: int) -> Optional[int]:
    """Credit back exactly the *days* a prior :func:`reserve` took."""
    if days < 0:
        raise OutOfRange(leave_type.value, f"Cannot release a negative day count ({days}).")
    current = get_balance(user, leave_type)
    if current is None:
        return None
    _set_balance(user, leave_type, current + days)
    logger.debug("released %d %s day(s) for user %s", days, leave_type.value, user.id)
    return current + days


def rebook(
    user: User,
    old_type: LeaveType,
    old_days: int,
    new_type: LeaveType,
    new_days: int,
) -> None:
    """Swap a reservation of *old_days* for one of *new_days*.

    Only the final balances are checked, so an edit that keeps the same
    day count is always accepted even when the balance sits at its cap.
    Nothing is mutated unless every resulting balance is valid.
    """
    if old_days < 0 or new_days < 0:
        raise OutOfRange(new_type.value, "Cannot rebook a negative day count.")

    targets: dict[LeaveType, int] = {}
    for leave_type in (old_type, new_type):
        current = get_balance(user, leave_type)
        if current is not None:
            targets.setdefault(leave_type, current)

    if old_type in targets:
        targets[old_type] += old_days
    if new_type in targets:
        available = targets[new_type]
        if available < new_days:
            raise InsufficientBalance(new_type.value, available, new_days)
        targets[new_type] = available - new_days

    for leave_type, value in targets.items():
        _check_bounds(leave_type, value)
    for leave_type, value in targets.items():
        setattr(user, _BALANCE_COLUMNS[leave_type], value)
    logger.debug(
        "rebooked user %s: %s x%d -> %s x%d",
        user.id, old_type.value, old_days, new_type.value, new_days,
    )


def assign(
    user: User,
    leave_type: LeaveType,
    value: int,
    *,
    ceiling: Optional[int] = None,
) -> int:
    """Set a balance outright, rejecting values outside its bounds.

    *ceiling* lowers the upper bound, e.g. to keep room for days held by
    open requests.
    """
    if get_balance(user, leave_type) is None:
        raise OutOfRange(leave_type.value, f"{leave_type.value} leave has no balance to set.")
    _check_bounds(leave_type, value, ceiling)
    setattr(user, _BALANCE_COLUMNS[leave_type], value)
    return value


def adjust(
    user: User,
    leave_type: LeaveType,
    *,
    delta: Optional[int] = None,
    value: Optional[int] = None,
    ceiling: Optional[int] = None,
) -> int:
    """Administrative correction: shift by *delta* or set to *value*.

    The result is clamped into the type's bounds, and below *ceiling* when
    given. Exactly one of *delta* and *value* must be given.
    """
    if (delta is None) == (value is None):
        raise ValueError("Pass exactly one of delta or value.")
    current = get_balance(user, leave_type)
    if current is None:
        raise OutOfRange(leave_type.value, f"{leave_type.value} leave has no balance to adjust.")

    target = current + delta if delta is not None else value
    low, high = BALANCE_BOUNDS[leave_type]
    if ceiling is not None:
        high = max(low, min(high, ceiling))
    clamped = max(low, min(high, target))
    _set_balance(user, leave_type, clamped)
    if clamped != target:
        logger.info(
            "clamped %s adjustment for user %s: requested %d, applied %d",
            leave_type.value, user.id, target, clamped,
        )
    return clamped
