"""
Authentication endpoints.

POST /api/auth/register - Create an account and start a session
POST /api/auth/login - Email/password login
POST /api/auth/logout - Revoke the session and clear cookies
POST /api/auth/forgot-password - Request a reset link (always generic)
POST /api/auth/reset-password - Redeem a reset token
POST /api/auth/verify-email - Redeem a verification token
POST /api/auth/send-verification - Resend verification (signed in)
POST /api/auth/send-verification-signup - Resend verification right after sign-up
"""

from __future__ import annotations

import time
from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    authorization_header,
    clear_session,
    decode_jwt,
    get_current_user,
    revoke_jwt,
    session_token_from_request,
    start_session,
)
from app.core.database import get_session
from app.core.email import EmailDispatcher, get_email_dispatcher
from app.core.responses import ok
from app.models.user import User
from app.services import users as user_service
from app.services import verification as verification_service
from workspace_shared.schemas.users import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SendVerificationSignupRequest,
    UserRead,
    VerifyEmailRequest,
)

log = structlog.get_logger()
router = APIRouter()


@router.post("/register")
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    user = await user_service.register(
        session, dispatcher, email=body.email, password=body.password, name=body.name
    )
    token = start_session(response, user)
    return ok(
        {"user": UserRead.model_validate(user), "token": token},
        "Registration successful",
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.authenticate(session, body.email, body.password)
    token = start_session(response, user)
    return ok({"user": UserRead.model_validate(user), "token": token}, "Login successful")


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    authorization: Optional[str] = Depends(authorization_header),
):
    """Revoke the current session (if any) for the rest of its lifetime."""
    token = session_token_from_request(request, authorization)
    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            payload = {}
        jti = payload.get("jti")
        if jti:
            ttl = int(payload.get("exp", 0) - time.time())
            await revoke_jwt(jti, ttl_seconds=ttl)
            log.info("session.revoked", user_id=payload.get("sub"))
    clear_session(response)
    return ok(message="Logged out")


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    message = await user_service.forgot_password(session, dispatcher, body.email)
    return ok(message=message)


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    session: AsyncSession = Depends(get_session),
):
    await verification_service.reset_password(session, body.token, body.password)
    return ok(message="Password reset successfully")


@router.post("/verify-email")
async def verify_email(
    body: VerifyEmailRequest,
    session: AsyncSession = Depends(get_session),
):
    user = await verification_service.verify_email(session, body.token)
    return ok({"user": UserRead.model_validate(user)}, "Email verified successfully")


@router.post("/send-verification")
async def send_verification(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    message = await user_service.send_verification(session, dispatcher, user)
    return ok(message=message)


@router.post("/send-verification-signup")
async def send_verification_signup(
    body: SendVerificationSignupRequest,
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    message = await user_service.send_verification_signup(
        session, dispatcher, body.user_id, body.email
    )
    return ok(message=message)
