"""Leave ORM models: LeaveRequest and its append-only LeaveAuditEntry trail."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_ledger.common.constants import AuditAction, LeaveStatus, LeaveType
from leave_ledger.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_requests_range"),
        sa.CheckConstraint("reserved_days >= 0", name="ck_leave_requests_reserved"),
        sa.Index("ix_leave_requests_user_status", "user_id", "status"),
        sa.Index("ix_leave_requests_user_dates", "user_id", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    emergency_contact: Mapped[str] = mapped_column(sa.String(255), default="")
    work_handover: Mapped[str] = mapped_column(sa.Text, default="")
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status"),
        nullable=False,
        default=LeaveStatus.pending,
    )
    # Days currently held against the owner's ledger for this request
    reserved_days: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    hr_override: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    comments: Mapped[str] = mapped_column(sa.Text, default="")
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id")
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
    owner: Mapped["User"] = relationship(
        back_populates="leave_requests",
        foreign_keys=[user_id],
        lazy="joined",
        innerjoin=True,
    )
    reviewer: Mapped[Optional["User"]] = relationship(
        foreign_keys=[reviewed_by]
    )
    audit_trail: Mapped[list[LeaveAuditEntry]] = relationship(
        back_populates="request",
        order_by="LeaveAuditEntry.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )


class LeaveAuditEntry(Base):
    __tablename__ = "leave_audit_entries"
    __table_args__ = (
        sa.UniqueConstraint("request_id", "position", name="uq_leave_audit_position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("leave_requests.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    action: Mapped[AuditAction] = mapped_column(
        sa.Enum(AuditAction, name="leave_audit_action"), nullable=False
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False
    )
    at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    meta: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)

    # Relationships
    request: Mapped[LeaveRequest] = relationship(back_populates="audit_trail")

    def __repr__(self) -> str:
        return (
            f"<LeaveAuditEntry #{self.position} {self.action.value} "
            f"on {self.request_id} by {self.actor_id}>"
        )
