"""Account, session and verification-token schemas."""

from __future__ import annotations

import re
import uuid
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .organizations import CamelModel

_PASSWORD_MIX = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_password_mix(value: str) -> str:
    if not _PASSWORD_MIX.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, "
            "one lowercase letter, and one number"
        )
    return value


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: Optional[str] = Field(default=None, max_length=200)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(CamelModel):
    # Format is checked by the email validator so the error carries a code
    email: str = Field(min_length=1, max_length=320)


class ResetPasswordRequest(CamelModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_mix(cls, value: str) -> str:
        return _check_password_mix(value)


class VerifyEmailRequest(CamelModel):
    token: str = Field(min_length=1)


class SendVerificationSignupRequest(CamelModel):
    user_id: uuid.UUID
    email: EmailStr


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserRead(CamelModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    email_verified: bool = False


class VerificationStatus(CamelModel):
    email_verified: bool
