"""User ORM model: identity, role, team link and the fixed leave balance record."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_ledger.common.constants import UserRole
from leave_ledger.config import settings
from leave_ledger.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        sa.CheckConstraint(
            f"annual_balance BETWEEN 0 AND {settings.ANNUAL_LEAVE_MAX}",
            name="ck_users_annual_balance_bounds",
        ),
        sa.CheckConstraint(
            f"sick_balance BETWEEN 0 AND {settings.SICK_LEAVE_MAX}",
            name="ck_users_sick_balance_bounds",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"), nullable=False
    )
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id"), index=True
    )
    annual_balance: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=settings.DEFAULT_ANNUAL_BALANCE
    )
    sick_balance: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=settings.DEFAULT_SICK_BALANCE
    )
    version: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    manager: Mapped[Optional[User]] = relationship(
        remote_side="User.id", back_populates="team"
    )
    team: Mapped[list[User]] = relationship(back_populates="manager")
    leave_requests: Mapped[list["LeaveRequest"]] = relationship(
        back_populates="owner",
        foreign_keys="LeaveRequest.user_id",
    )

    @property
    def balances(self) -> dict[str, int]:
        return {"annual": self.annual_balance, "sick": self.sick_balance}

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
