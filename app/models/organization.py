"""Organization model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    slug: str = Field(unique=True, nullable=False, index=True)
    owner_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
