"""
Single-use, time-bound tokens for email verification and password reset.

A token is deleted the moment it is redeemed, and also the first time it is
presented after expiry, so no token ever works twice.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password
from app.core.responses import ApiError
from app.models.base import ensure_utc, utcnow
from app.models.user import User
from app.models.verification import Verification
from workspace_shared.schemas.common import VerificationKind

log = structlog.get_logger()

TOKEN_TTL = timedelta(hours=7)


class TokenNotFoundError(ApiError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(400, message, "INVALID_TOKEN")


class TokenExpiredError(ApiError):
    def __init__(self, message: str = "Token has expired"):
        super().__init__(400, message, "TOKEN_EXPIRED")


async def _find(session: AsyncSession, kind: VerificationKind, token: str) -> Verification | None:
    result = await session.execute(
        select(Verification).where(
            Verification.identifier == kind.value, Verification.value == token
        )
    )
    return result.scalar_one_or_none()


async def issue_token(session: AsyncSession, kind: VerificationKind, user_id: uuid.UUID) -> str:
    """Create a token for ``user_id``. Earlier tokens stay valid until used or expired."""
    token = secrets.token_hex(32)
    expires_at = utcnow() + TOKEN_TTL

    row = await _find(session, kind, token)
    if row is None:
        row = Verification(identifier=kind.value, value=token, user_id=user_id, expires_at=expires_at)
    else:
        row.user_id = user_id
        row.expires_at = expires_at
        row.updated_at = utcnow()
    session.add(row)
    await session.flush()

    log.info("verification.issued", kind=kind.value, user_id=str(user_id))
    return token


async def redeem_token(session: AsyncSession, kind: VerificationKind, token: str) -> uuid.UUID:
    """Consume ``token`` and return its user id."""
    row = await _find(session, kind, token)
    if row is None:
        raise TokenNotFoundError()

    await session.delete(row)
    await session.flush()

    if ensure_utc(row.expires_at) <= utcnow():
        # Keep the delete even though this request fails
        await session.commit()
        log.info("verification.expired", kind=kind.value, user_id=str(row.user_id))
        raise TokenExpiredError()

    log.info("verification.redeemed", kind=kind.value, user_id=str(row.user_id))
    return row.user_id


async def verify_email(session: AsyncSession, token: str) -> User:
    user_id = await redeem_token(session, VerificationKind.EMAIL_VERIFICATION, token)
    user = await session.get(User, user_id)
    if not user:
        raise TokenNotFoundError()
    user.email_verified = True
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()
    return user


async def reset_password(session: AsyncSession, token: str, password: str) -> User:
    user_id = await redeem_token(session, VerificationKind.PASSWORD_RESET, token)
    user = await session.get(User, user_id)
    if not user:
        raise TokenNotFoundError()
    user.password_hash = hash_password(password)
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()
    log.info("user.password_reset", user_id=str(user.id))
    return user
