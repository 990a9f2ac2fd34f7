"""
User accounts: registration, login, verification emails and password reset
requests.
"""

from __future__ import annotations

import uuid
from typing import Optional
from urllib.parse import urlencode

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password, verify_password
from app.core.config import get_settings
from app.core.email import EmailDispatcher
from app.core.email_templates import password_reset_email, verification_email
from app.core.email_validation import validate_email_format
from app.core.responses import ApiError
from app.models.base import utcnow
from app.models.user import User
from app.services.verification import issue_token
from workspace_shared.schemas.common import VerificationKind

log = structlog.get_logger()

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists with this email, a password reset link has been sent."
)
SIGNUP_VERIFICATION_MESSAGE = (
    "If the account exists and is not yet verified, a verification email has been sent."
)


def _link(path: str, token: str) -> str:
    return f"{get_settings().base_url.rstrip('/')}{path}?{urlencode({'token': token})}"


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def _mark_verified(session: AsyncSession, user: User) -> None:
    user.email_verified = True
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()


async def _send_verification(
    session: AsyncSession, dispatcher: EmailDispatcher, user: User
) -> None:
    token = await issue_token(session, VerificationKind.EMAIL_VERIFICATION, user.id)
    dispatcher.dispatch(
        user.email,
        verification_email(_link("/auth/verify-email", token)),
        user_id=str(user.id),
    )


async def register(
    session: AsyncSession,
    dispatcher: EmailDispatcher,
    *,
    email: str,
    password: str,
    name: Optional[str] = None,
) -> User:
    if await get_user_by_email(session, email):
        raise ApiError.bad_request("An account with this email already exists", "EMAIL_EXISTS")

    user = User(
        email=email,
        name=(name or "").strip() or None,
        password_hash=hash_password(password),
    )
    session.add(user)
    await session.flush()

    if dispatcher.enabled:
        await _send_verification(session, dispatcher, user)
    else:
        # No way to deliver a link, so trust the address
        await _mark_verified(session, user)

    log.info("user.registered", user_id=str(user.id), verified=user.email_verified)
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(session, email)
    if not user or not user.password_hash or not verify_password(password, user.password_hash):
        log.info("user.login_failed", email=email)
        raise ApiError.unauthorized("Invalid email or password")
    log.info("user.login", user_id=str(user.id))
    return user


async def send_verification(
    session: AsyncSession, dispatcher: EmailDispatcher, user: User
) -> str:
    if user.email_verified:
        raise ApiError.bad_request("Email is already verified", "ALREADY_VERIFIED")
    if not dispatcher.enabled:
        await _mark_verified(session, user)
        return "Email verified"
    await _send_verification(session, dispatcher, user)
    return "Verification email sent. Please check your inbox (and spam folder)."


async def send_verification_signup(
    session: AsyncSession,
    dispatcher: EmailDispatcher,
    user_id: uuid.UUID,
    email: str,
) -> str:
    """Unauthenticated resend right after sign-up. Never reveals account state."""
    user = await session.get(User, user_id)
    if user is None or user.email != email or user.email_verified:
        log.info("verification.signup_resend_ignored", user_id=str(user_id))
        return SIGNUP_VERIFICATION_MESSAGE
    if dispatcher.enabled:
        await _send_verification(session, dispatcher, user)
    else:
        await _mark_verified(session, user)
    return SIGNUP_VERIFICATION_MESSAGE


async def forgot_password(
    session: AsyncSession, dispatcher: EmailDispatcher, email: str
) -> str:
    check = validate_email_format(email)
    if not check.valid:
        raise ApiError.bad_request(
            "Invalid email address", check.error_code or "INVALID_FORMAT", message=check.reason
        )

    user = await get_user_by_email(session, email.strip())
    if user is None and check.normalized != email.strip():
        user = await get_user_by_email(session, check.normalized)

    if user is None:
        log.info("password_reset.unknown_email")
        return FORGOT_PASSWORD_MESSAGE

    token = await issue_token(session, VerificationKind.PASSWORD_RESET, user.id)
    dispatcher.dispatch(
        user.email,
        password_reset_email(_link("/auth/reset-password", token)),
        user_id=str(user.id),
    )
    log.info("password_reset.requested", user_id=str(user.id))
    return FORGOT_PASSWORD_MESSAGE
