"""HTML bodies for transactional emails."""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Literal, Optional

Tone = Literal["default", "success", "warning", "error"]

_PALETTE = {
    "default": ("#3b82f6", "#f8fafc", "#1e293b"),
    "success": ("#10b981", "#f0fdf4", "#166534"),
    "warning": ("#f59e0b", "#fffbeb", "#92400e"),
    "error": ("#ef4444", "#fef2f2", "#991b1b"),
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str


def _esc(value: object) -> str:
    return html.escape(str(value), quote=True)


def render_email(
    subject: str,
    title: str,
    message: str,
    *,
    button_text: Optional[str] = None,
    button_link: Optional[str] = None,
    footer: Optional[str] = None,
    tone: Tone = "default",
) -> RenderedEmail:
    primary, note_bg, text_color = _PALETTE[tone]
    paragraphs = "".join(f"<p>{_esc(line)}</p>" for line in message.split("\n"))

    button = ""
    if button_text and button_link:
        button = f"""
        <div style="text-align: center; margin: 32px 0;">
            <a href="{_esc(button_link)}" style="display: inline-block; padding: 14px 32px;
               background-color: {primary}; color: #ffffff; text-decoration: none;
               border-radius: 8px; font-weight: 600;">{_esc(button_text)}</a>
        </div>"""

    note = ""
    if footer:
        note = f"""
        <div style="background-color: {note_bg}; border-left: 4px solid {primary};
                    padding: 16px; margin: 24px 0; font-size: 14px; color: #64748b;">
            {_esc(footer)}
        </div>"""

    body = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{_esc(title)}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
             line-height: 1.6; color: {text_color}; background-color: #f1f5f9; margin: 0; padding: 20px 0;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 8px;">
        <div style="background-color: {primary}; padding: 40px 30px; text-align: center;
                    border-radius: 8px 8px 0 0;">
            <h1 style="color: #ffffff; font-size: 28px; margin: 0;">{_esc(title)}</h1>
        </div>
        <div style="padding: 40px 30px;">
            {paragraphs}
            {button}
            {note}
        </div>
    </div>
</body>
</html>
"""

    text = message
    if button_link:
        text += f"\n\n{button_text or 'Link'}: {button_link}"
    if footer:
        text += f"\n\n{footer}"
    return RenderedEmail(subject=subject, text=text, html=body)


# ---------------------------------------------------------------------------
# Specific messages
# ---------------------------------------------------------------------------

def password_reset_email(reset_link: str, expires_in: str = "7 hours") -> RenderedEmail:
    return render_email(
        "Reset your password",
        "Reset Your Password",
        "Hi there,\n"
        "We received a request to reset your password. "
        "Click the button below to create a new password.\n"
        "If you didn't request this, you can safely ignore this email. "
        "Your password will remain unchanged.",
        button_text="Reset Password",
        button_link=reset_link,
        footer=f"This password reset link will expire in {expires_in}. "
        "Please do not share this link with anyone.",
        tone="warning",
    )


def verification_email(verify_link: str, expires_in: str = "7 hours") -> RenderedEmail:
    return render_email(
        "Verify your email address",
        "Verify Your Email",
        "Welcome!\n"
        "Thank you for signing up. Please verify your email address "
        "by clicking the button below to complete your registration.",
        button_text="Verify Email",
        button_link=verify_link,
        footer=f"This verification link will expire in {expires_in}. "
        "If you didn't create an account, please ignore this email.",
        tone="success",
    )


def invitation_email(org_name: str, invitation_link: str, days_left: int) -> RenderedEmail:
    expires_in = f"{days_left} day{'s' if days_left != 1 else ''}"
    return render_email(
        f'Invitation to join "{org_name}"',
        "You've Been Invited!",
        f'Hello,\nYou have been invited to join the organization "{org_name}".\n'
        "Click the button below to accept the invitation and start "
        "collaborating with your team.",
        button_text="Accept Invitation",
        button_link=invitation_link,
        footer=f"This invitation will expire in {expires_in}. If you did not "
        "expect this invitation, you can safely ignore this email.",
        tone="success",
    )


def invitation_accepted_email(member_name: str, org_name: str, workspace_link: str) -> RenderedEmail:
    return render_email(
        f'New member in "{org_name}"',
        "Member Joined",
        f'{member_name} accepted your invitation and joined "{org_name}".',
        button_text="Go to Workspace",
        button_link=workspace_link,
        tone="success",
    )


def join_request_email(
    requester_name: str,
    requester_email: str,
    org_name: str,
    accept_link: str,
    reject_link: str,
) -> RenderedEmail:
    return render_email(
        f'Request to join "{org_name}"',
        "New Join Request",
        f'{requester_name} ({requester_email}) has requested to join "{org_name}".\n'
        f"Reject this request: {reject_link}",
        button_text="Accept Request",
        button_link=accept_link,
        footer="This request expires in 7 days.",
    )


def join_accepted_email(org_name: str, workspace_link: str) -> RenderedEmail:
    return render_email(
        f'Your request to join "{org_name}" was accepted',
        "Join Request Accepted",
        f'Great news!\nYour request to join "{org_name}" has been accepted. '
        "You can now access the organization and collaborate with your team.",
        button_text="Go to Workspace",
        button_link=workspace_link,
        tone="success",
    )


def join_rejected_email(org_name: str) -> RenderedEmail:
    return render_email(
        f'Your request to join "{org_name}"',
        "Join Request Update",
        f'Hello,\nYour request to join "{org_name}" was not approved at this time.\n'
        "If you believe this is an error, please contact the organization owner directly.",
    )
