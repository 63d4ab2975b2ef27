"""User schemas."""

from datetime import datetime
from uuid import UUID

from calcify.schemas.base import BaseSchema


class UserRead(BaseSchema):
    """Profile of the signed-in learner."""

    id: UUID
    email: str | None
    name: str
    created_at: datetime
    updated_at: datetime
