"""Single-use verification tokens (email verification, password reset)."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Verification(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "verifications"
    __table_args__ = (
        sa.UniqueConstraint("identifier", "value", name="uq_verifications_identifier_value"),
    )

    identifier: str = Field(nullable=False)  # email-verification | password-reset
    value: str = Field(nullable=False)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
