"""In-app notification model.

``organization_id`` and ``invitation_id`` duplicate ids held in the JSON
metadata so the invitation and join-request flows can look rows up by index.
"""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class Notification(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "notifications"
    __table_args__ = (
        sa.Index("ix_notifications_user_read", "user_id", "read"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    type: str = Field(nullable=False)
    title: str = Field(nullable=False)
    message: str = Field(nullable=False)
    read: bool = Field(default=False, nullable=False)
    # "metadata" is reserved on declarative classes
    meta: dict = Field(
        default_factory=dict,
        sa_column=sa.Column("metadata", JSONType, nullable=False),
    )
    organization_id: Optional[uuid.UUID] = Field(default=None, index=True)
    invitation_id: Optional[uuid.UUID] = Field(default=None, index=True)
