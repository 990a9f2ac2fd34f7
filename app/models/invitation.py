"""Invitation model."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Invitation(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "invitations"
    __table_args__ = (
        sa.Index("ix_invitations_org_email_status", "organization_id", "email", "status"),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    email: str = Field(nullable=False, index=True)
    role: str = Field(nullable=False, default="member")
    inviter_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    status: str = Field(nullable=False, default="pending")  # pending | accepted | rejected | expired
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
