"""User model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)
    name: Optional[str] = None
    password_hash: Optional[str] = Field(default=None)  # bcrypt; None for accounts without a password
    email_verified: bool = Field(default=False, nullable=False)

    @property
    def display_name(self) -> str:
        return self.name or self.email
