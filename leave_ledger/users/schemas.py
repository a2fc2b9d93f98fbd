"""User Pydantic v2 schemas — balances, team views and employee management."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from leave_ledger.common.constants import LeaveType, UserRole


class BalanceOut(BaseModel):
    """Fixed balance record for one user."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    annual_balance: int
    sick_balance: int


class TeamMemberOut(BalanceOut):
    """Direct report as seen by a manager."""

    manager_id: Optional[uuid.UUID] = None


class EmployeeOut(TeamMemberOut):
    created_at: Optional[datetime] = None


class EmployeeCountOut(BaseModel):
    count: int


class EmployeeUpdate(BaseModel):
    """Partial update of an employee record (HR).

    Balances are set outright; they must stay within the type's bounds
    minus the days already held by open requests.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    manager_id: Optional[uuid.UUID] = None
    annual_balance: Optional[int] = None
    sick_balance: Optional[int] = None


class BalanceAdjustRequest(BaseModel):
    """HR correction: shift a balance by *delta* or set it to *value*."""

    leave_type: LeaveType
    delta: Optional[int] = None
    value: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _exactly_one(self) -> "BalanceAdjustRequest":
        if (self.delta is None) == (self.value is None):
            raise ValueError("Provide exactly one of 'delta' or 'value'.")
        return self
