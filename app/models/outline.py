"""Outline model: a tracked item scoped to an organization."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Outline(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "outlines"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    header: str = Field(nullable=False, max_length=500)
    section_type: str = Field(nullable=False)
    status: str = Field(nullable=False, default="Pending")  # Pending | In-Progress | Completed
    target: int = Field(default=0, nullable=False)
    limit: int = Field(default=0, nullable=False)
    reviewer: str = Field(nullable=False, default="Assim")  # Assim | Bini | Mami
