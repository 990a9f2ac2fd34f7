"""
Tests for authentication.

Covers:
- Password hashing (bcrypt, 72-byte truncation)
- JWT creation, decoding, expiry and tampering
- CSRF middleware and security headers middleware
- Register, login, logout
- Forgot-password anti-enumeration and malformed addresses
- Verification status and resend
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import jwt as pyjwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlmodel import select

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    create_jwt,
    decode_jwt,
    generate_csrf_token,
    hash_password,
    verify_password,
)
from app.core.middleware import CSRFMiddleware, SECURITY_HEADERS, SecurityHeadersMiddleware
from app.models.user import User
from app.models.verification import Verification
from app.services.users import FORGOT_PASSWORD_MESSAGE, SIGNUP_VERIFICATION_MESSAGE


# ---------------------------------------------------------------------------
# Unit Tests: Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "MySecureP@ssw0rd!"
        hashed = hash_password(password)
        assert hashed != password
        assert verify_password(password, hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("correct-password")
        assert not verify_password("wrong-password", hashed)

    def test_long_passwords_truncate_to_72_bytes(self):
        base = "a" * 72
        hashed = hash_password(base + "tail-one")
        assert verify_password(base + "tail-two", hashed)

    def test_malformed_hash_is_rejected(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------

class TestJWT:
    def test_create_and_decode(self):
        uid = uuid.uuid4()
        token, jti = create_jwt(uid)
        payload = decode_jwt(token)
        assert payload["sub"] == str(uid)
        assert payload["jti"] == jti
        assert payload["exp"] > payload["iat"]

    def test_expired_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    def test_swapped_payload_raises(self):
        token, _ = create_jwt(uuid.uuid4())
        other, _ = create_jwt(uuid.uuid4())
        header, _, signature = token.split(".")
        forged = ".".join([header, other.split(".")[1], signature])
        with pytest.raises(pyjwt.InvalidSignatureError):
            decode_jwt(forged)

    def test_foreign_key_raises(self):
        token = pyjwt.encode(
            {"sub": str(uuid.uuid4()), "jti": "x"}, "some-other-secret-key-of-32-bytes!", "HS256"
        )
        with pytest.raises(pyjwt.InvalidSignatureError):
            decode_jwt(token)

    def test_garbled_token_raises(self):
        token, _ = create_jwt(uuid.uuid4())
        with pytest.raises(pyjwt.InvalidTokenError):
            decode_jwt(token[:-5] + "XXXXX")


class TestCSRFToken:
    def test_generates_unique_tokens(self):
        t1 = generate_csrf_token()
        t2 = generate_csrf_token()
        assert t1 != t2
        assert len(t1) > 20


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value


class TestCSRFMiddleware:
    def _make_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CSRFMiddleware)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        @app.post("/test")
        async def post_test():
            return {"ok": True}

        return app

    def test_get_passes_without_csrf(self):
        client = TestClient(self._make_app(), cookies={SESSION_COOKIE: "some-jwt"})
        resp = client.get("/test")
        assert resp.status_code == 200

    def test_post_with_bearer_skips_csrf(self):
        client = TestClient(self._make_app(), cookies={SESSION_COOKIE: "some-jwt"})
        resp = client.post("/test", headers={"Authorization": "Bearer abc"})
        assert resp.status_code == 200

    def test_post_without_session_cookie_passes(self):
        """No session cookie = not a browser session, skip CSRF."""
        client = TestClient(self._make_app())
        resp = client.post("/test")
        assert resp.status_code == 200

    def test_post_with_session_but_no_csrf_fails(self):
        client = TestClient(self._make_app(), cookies={SESSION_COOKIE: "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert body["errorCode"] == "CSRF_VALIDATION_FAILED"

    def test_post_with_matching_csrf_passes(self):
        csrf_token = "test-csrf-token"
        client = TestClient(
            self._make_app(),
            cookies={SESSION_COOKIE: "some-jwt", CSRF_COOKIE: csrf_token},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": csrf_token})
        assert resp.status_code == 200

    def test_post_with_mismatched_csrf_fails(self):
        client = TestClient(
            self._make_app(),
            cookies={SESSION_COOKIE: "some-jwt", CSRF_COOKIE: "token-a"},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": "token-b"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Integration Tests: Auth Endpoints
# ---------------------------------------------------------------------------

class TestRegister:
    @pytest.mark.asyncio
    async def test_register_starts_session_and_sends_verification(
        self, client, dispatcher, session_factory
    ):
        resp = await client.post(
            "/api/auth/register",
            json={"email": "dana@acme.io", "password": "Secretpass1", "name": "Dana"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["user"]["email"] == "dana@acme.io"
        assert body["data"]["user"]["emailVerified"] is False
        assert body["data"]["token"]
        set_cookies = resp.headers.get_list("set-cookie")
        assert any(c.startswith(f"{SESSION_COOKIE}=") for c in set_cookies)
        assert any(c.startswith(f"{CSRF_COOKIE}=") for c in set_cookies)
        assert dispatcher.subjects_for("dana@acme.io") == ["Verify your email address"]

        async with session_factory() as session:
            result = await session.execute(select(Verification))
            rows = result.scalars().all()
        assert len(rows) == 1
        assert rows[0].identifier == "email-verification"

    @pytest.mark.asyncio
    async def test_register_without_email_auto_verifies(self, client, dispatcher):
        dispatcher.enabled = False
        resp = await client.post(
            "/api/auth/register",
            json={"email": "erin@acme.io", "password": "Secretpass1"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["emailVerified"] is True
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, bob):
        resp = await client.post(
            "/api/auth/register",
            json={"email": bob.email, "password": "Secretpass1"},
        )
        assert resp.status_code == 400
        assert resp.json()["errorCode"] == "EMAIL_EXISTS"

    @pytest.mark.asyncio
    async def test_short_password_is_a_validation_error(self, client):
        resp = await client.post(
            "/api/auth/register",
            json={"email": "fay@acme.io", "password": "short"},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["errorCode"] == "VALIDATION_ERROR"
        assert body["details"][0]["loc"][-1] == "password"


class TestLoginLogout:
    @pytest.mark.asyncio
    async def test_login_success(self, client, bob):
        resp = await client.post(
            "/api/auth/login", json={"email": bob.email, "password": "Secretpass1"}
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user"]["id"] == str(bob.id)
        assert decode_jwt(data["token"])["sub"] == str(bob.id)

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, bob):
        resp = await client.post(
            "/api/auth/login", json={"email": bob.email, "password": "Wrongpass1"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_unknown_user_same_error(self, client):
        resp = await client.post(
            "/api/auth/login", json={"email": "nobody@acme.io", "password": "Secretpass1"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, client, bob, no_redis):
        token, jti = create_jwt(bob.id)
        resp = await client.post(
            "/api/auth/logout", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 200
        no_redis.assert_awaited_once()
        assert no_redis.await_args.args[0] == jti

    @pytest.mark.asyncio
    async def test_revoked_token_is_rejected(self, client, bob, auth_headers):
        with patch("app.core.auth.is_jwt_revoked", new=AsyncMock(return_value=True)):
            resp = await client.get("/api/user/verification-status", headers=auth_headers(bob))
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_credentials(self, client):
        resp = await client.get("/api/org/list")
        assert resp.status_code == 401
        assert resp.json()["errorCode"] == "UNAUTHORIZED"


class TestForgotPassword:
    @pytest.mark.asyncio
    async def test_known_email_gets_generic_message_and_link(self, client, bob, dispatcher):
        resp = await client.post("/api/auth/forgot-password", json={"email": bob.email})
        assert resp.status_code == 200
        assert resp.json()["message"] == FORGOT_PASSWORD_MESSAGE
        assert dispatcher.subjects_for(bob.email) == ["Reset your password"]

    @pytest.mark.asyncio
    async def test_unknown_email_gets_same_message(self, client, dispatcher):
        resp = await client.post("/api/auth/forgot-password", json={"email": "ghost@acme.io"})
        assert resp.status_code == 200
        assert resp.json()["message"] == FORGOT_PASSWORD_MESSAGE
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_malformed_email_is_rejected(self, client):
        resp = await client.post("/api/auth/forgot-password", json={"email": "not-an-email"})
        assert resp.status_code == 400
        assert resp.json()["errorCode"] == "INVALID_FORMAT"


class TestVerificationStatus:
    @pytest.mark.asyncio
    async def test_status_reflects_user(self, client, make_user, auth_headers):
        user = await make_user("gus@acme.io", verified=False)
        resp = await client.get("/api/user/verification-status", headers=auth_headers(user))
        assert resp.status_code == 200
        assert resp.json()["data"] == {"emailVerified": False}

    @pytest.mark.asyncio
    async def test_resend_when_already_verified(self, client, bob, auth_headers):
        resp = await client.post("/api/auth/send-verification", headers=auth_headers(bob))
        assert resp.status_code == 400
        assert resp.json()["errorCode"] == "ALREADY_VERIFIED"

    @pytest.mark.asyncio
    async def test_resend_sends_email(self, client, make_user, auth_headers, dispatcher):
        user = await make_user("hana@acme.io", verified=False)
        resp = await client.post("/api/auth/send-verification", headers=auth_headers(user))
        assert resp.status_code == 200
        assert dispatcher.subjects_for(user.email) == ["Verify your email address"]

    @pytest.mark.asyncio
    async def test_signup_resend_never_reveals_account_state(self, client, bob, dispatcher):
        for user_id, email in ((bob.id, bob.email), (uuid.uuid4(), "nobody@acme.io")):
            resp = await client.post(
                "/api/auth/send-verification-signup",
                json={"userId": str(user_id), "email": email},
            )
            assert resp.status_code == 200
            assert resp.json()["message"] == SIGNUP_VERIFICATION_MESSAGE
        # bob is already verified, nobody does not exist
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_signup_resend_for_unverified_user(
        self, client, make_user, dispatcher, session_factory
    ):
        user = await make_user("ivy@acme.io", verified=False)
        resp = await client.post(
            "/api/auth/send-verification-signup",
            json={"userId": str(user.id), "email": user.email},
        )
        assert resp.status_code == 200
        assert dispatcher.subjects_for(user.email) == ["Verify your email address"]

        async with session_factory() as session:
            refreshed = await session.get(User, user.id)
        assert refreshed.email_verified is False
