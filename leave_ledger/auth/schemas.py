"""Auth Pydantic schemas — the actor context handed to the ledger core."""


import uuid

from pydantic import BaseModel, ConfigDict

from leave_ledger.common.constants import UserRole


class Actor(BaseModel):
    """Authenticated caller: who is acting and in which role."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    role: UserRole
