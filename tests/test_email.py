"""
Tests for outbound email.

Covers:
- Address validation (format, placeholder and disposable domains)
- Retry with exponential backoff, no retry on auth failures
- Dead-letter logging once retries are exhausted
- Disabled delivery and background dispatch
- Template escaping
"""

from __future__ import annotations

import smtplib
from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from app.core.config import Settings
from app.core.email import EmailDispatcher, build_message
from app.core.email_templates import join_request_email, render_email, verification_email
from app.core.email_validation import can_receive_emails, validate_email_format


class FlakyTransport:
    """Fails the first ``failures`` sends with ``exc``, then succeeds."""

    def __init__(self, failures: int = 0, exc: Exception | None = None):
        self.failures = failures
        self.exc = exc or OSError("connection reset")
        self.calls = 0
        self.delivered = []

    def send(self, message):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        self.delivered.append(message)


def _dispatcher(transport, **overrides) -> tuple[EmailDispatcher, AsyncMock]:
    settings = Settings(
        email_enabled=overrides.pop("email_enabled", True),
        email_max_retries=overrides.pop("email_max_retries", 3),
        email_retry_base_seconds=1.0,
        smtp_from="noreply@acme.io",
    )
    sleep = AsyncMock()
    return EmailDispatcher(settings, transport=transport, sleep=sleep), sleep


EMAIL = verification_email("https://workspace.acme.dev/auth/verify-email?token=abc")


# ---------------------------------------------------------------------------
# Unit Tests: address validation
# ---------------------------------------------------------------------------

class TestEmailValidation:
    def test_valid_address_is_normalized(self):
        check = validate_email_format("  Bob@Acme.IO ")
        assert check.valid
        assert check.normalized == "bob@acme.io"

    @pytest.mark.parametrize(
        "value,code",
        [
            (None, "EMAIL_REQUIRED"),
            ("   ", "EMAIL_EMPTY"),
            ("not-an-email", "INVALID_FORMAT"),
            ("a@@acme.io", "INVALID_FORMAT"),
            ("someone@example.com", "INVALID_DOMAIN_TYPE"),
        ],
    )
    def test_rejections(self, value, code):
        check = validate_email_format(value)
        assert not check.valid
        assert check.error_code == code

    def test_disposable_domain(self):
        check = can_receive_emails("temp@mailinator.com")
        assert not check.valid
        assert check.error_code == "DISPOSABLE_EMAIL"
        assert validate_email_format("temp@mailinator.com").valid


# ---------------------------------------------------------------------------
# Unit Tests: delivery
# ---------------------------------------------------------------------------

class TestEmailDispatcher:
    @pytest.mark.asyncio
    async def test_sends_first_try(self):
        transport = FlakyTransport()
        dispatcher, sleep = _dispatcher(transport)
        assert await dispatcher.send("bob@acme.io", EMAIL) is True
        assert transport.calls == 1
        sleep.assert_not_awaited()
        message = transport.delivered[0]
        assert message["To"] == "bob@acme.io"
        assert message["From"] == "noreply@acme.io"
        assert message["Subject"] == "Verify your email address"

    @pytest.mark.asyncio
    async def test_retries_with_exponential_backoff(self):
        transport = FlakyTransport(failures=2)
        dispatcher, sleep = _dispatcher(transport)
        assert await dispatcher.send("bob@acme.io", EMAIL) is True
        assert transport.calls == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_dead_letter_after_exhausting_retries(self):
        transport = FlakyTransport(failures=10, exc=smtplib.SMTPServerDisconnected("gone"))
        dispatcher, sleep = _dispatcher(transport)
        with capture_logs() as logs:
            assert await dispatcher.send("bob@acme.io", EMAIL, user_id="u1") is False
        assert transport.calls == 3
        # no sleep after the final attempt
        assert sleep.await_count == 2
        dead = [entry for entry in logs if entry["event"] == "email.dead_letter"]
        assert len(dead) == 1
        assert dead[0]["to"] == "bob@acme.io"
        assert dead[0]["error_type"] == "SMTPServerDisconnected"
        assert dead[0]["user_id"] == "u1"

    @pytest.mark.asyncio
    async def test_auth_failure_is_not_retried(self):
        transport = FlakyTransport(
            failures=10, exc=smtplib.SMTPAuthenticationError(535, b"bad credentials")
        )
        dispatcher, sleep = _dispatcher(transport)
        assert await dispatcher.send("bob@acme.io", EMAIL) is False
        assert transport.calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_recipient_skips_transport(self):
        transport = FlakyTransport()
        dispatcher, _ = _dispatcher(transport)
        with capture_logs() as logs:
            assert await dispatcher.send("someone@example.com", EMAIL) is False
            assert await dispatcher.send("temp@mailinator.com", EMAIL) is False
        assert transport.calls == 0
        codes = [e["error_code"] for e in logs if e["event"] == "email.invalid_recipient"]
        assert codes == ["INVALID_DOMAIN_TYPE", "DISPOSABLE_EMAIL"]

    @pytest.mark.asyncio
    async def test_disabled(self):
        transport = FlakyTransport()
        dispatcher, _ = _dispatcher(transport, email_enabled=False)
        assert dispatcher.enabled is False
        assert await dispatcher.send("bob@acme.io", EMAIL) is False
        assert dispatcher.dispatch("bob@acme.io", EMAIL) is None
        assert transport.calls == 0

    @pytest.mark.asyncio
    async def test_unconfigured_smtp_is_skipped(self):
        dispatcher = EmailDispatcher(Settings(email_enabled=True, smtp_host=""))
        with capture_logs() as logs:
            assert await dispatcher.send("bob@acme.io", EMAIL) is False
        assert [e["event"] for e in logs] == ["email.not_configured"]

    @pytest.mark.asyncio
    async def test_dispatch_runs_in_background(self):
        transport = FlakyTransport(failures=1)
        dispatcher, _ = _dispatcher(transport)
        task = dispatcher.dispatch("bob@acme.io", EMAIL)
        assert task is not None
        await dispatcher.drain()
        assert task.result() is True
        assert transport.calls == 2


# ---------------------------------------------------------------------------
# Unit Tests: templates
# ---------------------------------------------------------------------------

class TestTemplates:
    def test_user_content_is_escaped(self):
        email = render_email("Hi", "Title", '<script>alert("x")</script>')
        assert "<script>" not in email.html
        assert "&lt;script&gt;" in email.html
        assert '<script>alert("x")</script>' in email.text

    def test_join_request_email_carries_both_links(self):
        email = join_request_email(
            "Bob", "bob@acme.io", "Acme", "https://a.io/accept", "https://a.io/reject"
        )
        assert "https://a.io/accept" in email.html
        assert "https://a.io/reject" in email.text

    def test_build_message_is_multipart(self):
        msg = build_message("noreply@acme.io", "bob@acme.io", EMAIL)
        assert msg.is_multipart()
        types = [part.get_content_type() for part in msg.iter_parts()]
        assert types == ["text/plain", "text/html"]
