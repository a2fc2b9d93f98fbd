"""Append-only audit trail attached to each leave request.

Entries are only ever appended through :func:`append_audit_entry`. ORM
listeners reject any UPDATE or DELETE of a stored entry so the trail can
be neither rewritten nor truncated through the ORM.
"""

from __future__ import annotations

import enum
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import event

from leave_ledger.common.constants import AuditAction
from leave_ledger.leave.models import LeaveAuditEntry, LeaveRequest

logger = logging.getLogger(__name__)


class AuditTrailViolation(RuntimeError):
    """Raised when code attempts to modify or delete a stored audit entry."""


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def append_audit_entry(
    request: LeaveRequest,
    *,
    action: AuditAction,
    actor_id: uuid.UUID,
    meta: Optional[dict[str, Any]] = None,
    at: Optional[datetime] = None,
) -> LeaveAuditEntry:
    """Append a new entry to *request*'s trail; position is assigned by the collection."""
    entry = LeaveAuditEntry(
        action=action,
        actor_id=actor_id,
        at=at or datetime.now(timezone.utc),
        meta=_jsonable(meta or {}),
    )
    request.audit_trail.append(entry)
    return entry


# ── Immutability guards ─────────────────────────────────────────────

@event.listens_for(LeaveAuditEntry, "before_update")
def _block_audit_update(mapper, connection, target):
    logger.error("blocked update of audit entry %s", target.id)
    raise AuditTrailViolation(f"Audit entry {target.id} is immutable.")


@event.listens_for(LeaveAuditEntry, "before_delete")
def _block_audit_delete(mapper, connection, target):
    logger.error("blocked delete of audit entry %s", target.id)
    raise AuditTrailViolation(f"Audit entry {target.id} cannot be deleted.")
