"""
Sessions and credentials.

- bcrypt password hashing
- JWT sessions carried in the ``ws_session`` cookie or a Bearer header
- Redis revocation list keyed by the token's ``jti``
- CSRF token generation for the double-submit cookie
- ``get_current_user`` FastAPI dependency
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request, Response
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.redis import get_redis
from app.core.responses import ApiError
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "ws_session"
CSRF_COOKIE = "ws_csrf"

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(
        password.encode()[:_BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=12)
    ).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode()[:_BCRYPT_MAX_BYTES], hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int = 3600) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    await redis.setex(f"jwt:revoked:{jti}", max(ttl_seconds, 1), "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# CSRF token + cookies
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


def _cookie_kwargs() -> dict:
    return {
        "secure": not settings.debug,  # allow non-HTTPS in dev
        "samesite": "lax",
        "path": "/",
        "max_age": settings.jwt_expire_minutes * 60,
    }


def start_session(response: Response, user: User) -> str:
    """Issue a session for ``user`` and set both cookies. Returns the JWT."""
    token, _ = create_jwt(user.id)
    response.set_cookie(key=SESSION_COOKIE, value=token, httponly=True, **_cookie_kwargs())
    # JS must read the CSRF cookie to echo it in X-CSRF-Token
    response.set_cookie(
        key=CSRF_COOKIE, value=generate_csrf_token(), httponly=False, **_cookie_kwargs()
    )
    log.info("session.started", user_id=str(user.id))
    return token


def clear_session(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")


def session_token_from_request(
    request: Request, authorization: Optional[str] = None
) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


# ---------------------------------------------------------------------------
# Authentication dependency
# ---------------------------------------------------------------------------

async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the signed-in user or raise 401."""
    token = session_token_from_request(request, authorization)
    if not token:
        raise ApiError.unauthorized("Authentication required")

    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise ApiError.unauthorized("Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise ApiError.unauthorized("Session has been revoked")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise ApiError.unauthorized("Invalid or expired session")

    user = await session.get(User, user_id)
    if not user:
        raise ApiError.unauthorized("User not found")

    request.state.user = user
    return user
