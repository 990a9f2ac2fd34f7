"""
Outbound email.

Email is always a companion to an in-app notification, so nothing here ever
raises into a request handler. ``EmailDispatcher.dispatch`` schedules delivery
as a background task; each delivery runs the blocking ``smtplib`` client in a
worker thread with a socket timeout, retries transient failures with
exponential backoff, and logs ``email.dead_letter`` when it gives up.
"""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Awaitable, Callable, Optional, Protocol

import structlog

from app.core.config import Settings, get_settings
from app.core.email_templates import RenderedEmail
from app.core.email_validation import can_receive_emails

log = structlog.get_logger()


class EmailTransport(Protocol):
    def send(self, message: EmailMessage) -> None: ...


class SmtpTransport:
    """Blocking SMTP delivery; call from a worker thread."""

    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def configured(self) -> bool:
        return bool(self._settings.smtp_host)

    def send(self, message: EmailMessage) -> None:
        s = self._settings
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as smtp:
            if s.smtp_use_tls:
                smtp.starttls()
            if s.smtp_user:
                smtp.login(s.smtp_user, s.smtp_password)
            smtp.send_message(message)


def build_message(sender: str, to: str, email: RenderedEmail) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = email.subject
    msg["From"] = sender
    msg["To"] = to
    msg.set_content(email.text)
    msg.add_alternative(email.html, subtype="html")
    return msg


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return False
    return isinstance(exc, (smtplib.SMTPException, OSError, TimeoutError))


class EmailDispatcher:
    """Fire-and-forget email delivery with bounded retries."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[EmailTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._settings = settings or get_settings()
        self._transport = transport or SmtpTransport(self._settings)
        self._sleep = sleep
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._settings.email_enabled

    async def send(self, to: str, email: RenderedEmail, **context) -> bool:
        """Deliver one message. Returns False instead of raising on failure."""
        if not self.enabled:
            log.info("email.skipped_disabled", to=to, subject=email.subject, **context)
            return False

        check = can_receive_emails(to)
        if not check.valid:
            log.warning(
                "email.invalid_recipient",
                to=to,
                reason=check.reason,
                error_code=check.error_code,
                **context,
            )
            return False

        if isinstance(self._transport, SmtpTransport) and not self._transport.configured:
            log.warning("email.not_configured", to=to, subject=email.subject, **context)
            return False

        message = build_message(self._settings.email_from, to, email)
        max_retries = max(self._settings.email_max_retries, 1)
        base = self._settings.email_retry_base_seconds

        last_exc: BaseException | None = None
        for attempt in range(max_retries):
            try:
                await asyncio.to_thread(self._transport.send, message)
                log.info("email.sent", to=to, subject=email.subject, attempt=attempt + 1, **context)
                return True
            except Exception as exc:
                last_exc = exc
                if not _is_retryable(exc):
                    break
                if attempt + 1 < max_retries:
                    backoff = base * (2 ** attempt)
                    log.warning(
                        "email.retry",
                        to=to,
                        attempt=attempt + 1,
                        backoff=backoff,
                        error=str(exc),
                    )
                    await self._sleep(backoff)

        log.error(
            "email.dead_letter",
            to=to,
            subject=email.subject,
            error=str(last_exc),
            error_type=type(last_exc).__name__,
            **context,
        )
        return False

    def dispatch(self, to: str, email: RenderedEmail, **context) -> Optional[asyncio.Task]:
        """Schedule delivery without blocking the caller."""
        if not self.enabled:
            log.info("email.skipped_disabled", to=to, subject=email.subject, **context)
            return None
        task = asyncio.create_task(self.send(to, email, **context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


_dispatcher: EmailDispatcher | None = None


def get_email_dispatcher() -> EmailDispatcher:
    """FastAPI dependency returning the process-wide dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EmailDispatcher()
    return _dispatcher


async def drain_email_dispatcher() -> None:
    if _dispatcher is not None:
        await _dispatcher.drain()
