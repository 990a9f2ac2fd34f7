"""Organization membership (join table). One ``owner`` row per organization."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import utcnow


class OrganizationMember(SQLModel, table=True):
    __tablename__ = "organization_members"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="member")  # owner | member
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
