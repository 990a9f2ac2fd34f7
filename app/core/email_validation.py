"""
Email address checks used before accepting or sending to an address.

Format is delegated to ``email-validator`` (the same library behind pydantic's
``EmailStr``); the local blocklists reject placeholder and disposable domains
that would only ever bounce.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from email_validator import EmailNotValidError, validate_email

PLACEHOLDER_DOMAINS = frozenset(
    {"example.com", "test.com", "invalid.com", "fake.com", "localhost"}
)

DISPOSABLE_DOMAINS = frozenset(
    {
        "tempmail.com",
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "throwaway.email",
    }
)


@dataclass(frozen=True)
class EmailCheck:
    valid: bool
    normalized: Optional[str] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None


def validate_email_format(email: Optional[str]) -> EmailCheck:
    """Structural check of an address the user typed."""
    if not email or not isinstance(email, str):
        return EmailCheck(False, reason="Email address is required", error_code="EMAIL_REQUIRED")

    candidate = email.strip().lower()
    if not candidate:
        return EmailCheck(False, reason="Email address cannot be empty", error_code="EMAIL_EMPTY")

    try:
        result = validate_email(candidate, check_deliverability=False)
    except EmailNotValidError as exc:
        return EmailCheck(
            False,
            reason=f"Invalid email format: {exc}",
            error_code="INVALID_FORMAT",
        )

    domain = result.domain.lower()
    if domain in PLACEHOLDER_DOMAINS:
        return EmailCheck(
            False,
            reason="This email domain is not valid for sending emails",
            error_code="INVALID_DOMAIN_TYPE",
        )
    return EmailCheck(True, normalized=result.normalized.lower())


def can_receive_emails(email: Optional[str]) -> EmailCheck:
    """Format check plus the disposable-domain blocklist."""
    check = validate_email_format(email)
    if not check.valid:
        return check
    domain = check.normalized.rsplit("@", 1)[1]
    if domain in DISPOSABLE_DOMAINS:
        return EmailCheck(
            False,
            reason="Disposable email addresses are not allowed",
            error_code="DISPOSABLE_EMAIL",
        )
    return check
