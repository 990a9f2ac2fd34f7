"""
Invitation lifecycle: invite, accept, reject.

Status only moves forward (see ``INVITATION_TRANSITIONS``). Expiry is lazy:
``resolve_invitation_expiry`` flips a stale pending row to ``expired`` the
first time any read path touches it, and is the only place that decides
whether an invitation has expired.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.email import EmailDispatcher
from app.core.email_templates import invitation_accepted_email, invitation_email
from app.core.responses import ApiError
from app.models.base import ensure_utc, utcnow
from app.models.invitation import Invitation
from app.models.organization import Organization
from app.models.user import User
from app.services import notifications as notification_service
from app.services.access import get_membership, get_org_or_404
from app.services.members import add_member
from workspace_shared.schemas.common import (
    INVITATION_TRANSITIONS,
    InvitationStatus,
    MemberRole,
    NotificationType,
)

log = structlog.get_logger()

INVITATION_TTL = timedelta(days=7)


@dataclass
class AcceptOutcome:
    invitation: Invitation
    organization: Organization
    already_member: bool


def days_until(expires_at: datetime, now: Optional[datetime] = None) -> int:
    remaining = ensure_utc(expires_at) - (now or utcnow())
    return max(math.ceil(remaining.total_seconds() / 86400), 0)


def _transition(invitation: Invitation, target: InvitationStatus) -> None:
    current = InvitationStatus(invitation.status)
    if target not in INVITATION_TRANSITIONS[current]:
        raise ApiError.bad_request(
            f"This invitation has already been {current.value}", "INVITATION_NOT_PENDING"
        )
    invitation.status = target.value
    invitation.updated_at = utcnow()


async def resolve_invitation_expiry(
    session: AsyncSession, invitation: Invitation, now: Optional[datetime] = None
) -> bool:
    """Flip a pending invitation past its expiry to ``expired``.

    Returns True when the invitation is (now) expired.
    """
    status = InvitationStatus(invitation.status)
    if status == InvitationStatus.EXPIRED:
        return True
    if status != InvitationStatus.PENDING:
        return False
    if ensure_utc(invitation.expires_at) > (now or utcnow()):
        return False

    _transition(invitation, InvitationStatus.EXPIRED)
    session.add(invitation)
    await session.flush()
    log.info("invitation.expired", invitation_id=str(invitation.id))
    return True


# ---------------------------------------------------------------------------
# Invite
# ---------------------------------------------------------------------------

async def invite(
    session: AsyncSession,
    dispatcher: EmailDispatcher,
    *,
    org_id: uuid.UUID,
    email: str,
    role: MemberRole,
    inviter: User,
) -> Invitation:
    membership = await get_membership(session, org_id, inviter.id)
    if not membership or membership.role != MemberRole.OWNER.value:
        raise ApiError.forbidden("Only the organization owner can invite members")
    org = await get_org_or_404(session, org_id)

    if role == MemberRole.OWNER:
        raise ApiError.bad_request("Invitations can only grant the member role", "INVALID_ROLE")

    email = email.strip()
    if email == inviter.email:
        raise ApiError.bad_request("You cannot invite yourself", "CANNOT_INVITE_SELF")

    result = await session.execute(select(User).where(User.email == email))
    invited_user = result.scalar_one_or_none()
    if invited_user and await get_membership(session, org_id, invited_user.id):
        raise ApiError.bad_request(
            "This user is already a member of the organization", "ALREADY_MEMBER"
        )

    now = utcnow()
    result = await session.execute(
        select(Invitation).where(
            Invitation.organization_id == org_id,
            Invitation.email == email,
            Invitation.status == InvitationStatus.PENDING.value,
        )
    )
    for pending in result.scalars().all():
        if not await resolve_invitation_expiry(session, pending, now):
            raise ApiError.bad_request(
                "An invitation has already been sent to this email", "INVITATION_EXISTS"
            )

    invitation = Invitation(
        organization_id=org_id,
        email=email,
        role=role.value,
        inviter_id=inviter.id,
        status=InvitationStatus.PENDING.value,
        expires_at=now + INVITATION_TTL,
    )
    session.add(invitation)
    await session.flush()

    days_left = days_until(invitation.expires_at, now)
    plural = "s" if days_left != 1 else ""
    if invited_user:
        await notification_service.upsert_invitation_notification(
            session,
            user_id=invited_user.id,
            org_id=org.id,
            invitation_id=invitation.id,
            title="Organization Invitation",
            message=f'You have been invited to join "{org.name}" (expires in {days_left} day{plural})',
            metadata={
                "organizationId": org.id,
                "organizationName": org.name,
                "invitationId": invitation.id,
                "inviterId": inviter.id,
                "inviterName": inviter.display_name,
                "expiresAt": ensure_utc(invitation.expires_at).isoformat(),
                "daysUntilExpiration": days_left,
            },
        )

    link = f"{get_settings().workspace_url}?invitation={invitation.id}"
    dispatcher.dispatch(
        email,
        invitation_email(org.name, link, days_left),
        invitation_id=str(invitation.id),
    )

    log.info(
        "invitation.created",
        invitation_id=str(invitation.id),
        org_id=str(org.id),
        inviter=str(inviter.id),
        existing_user=invited_user is not None,
    )
    return invitation


# ---------------------------------------------------------------------------
# Accept / reject
# ---------------------------------------------------------------------------

async def _load_actionable(
    session: AsyncSession, invitation_id: uuid.UUID, user: User
) -> Invitation:
    """Shared lookup, lazy expiry, status and addressee checks."""
    invitation = await session.get(Invitation, invitation_id)
    if not invitation:
        raise ApiError.not_found("Invitation not found")

    was_pending = invitation.status == InvitationStatus.PENDING.value
    if await resolve_invitation_expiry(session, invitation):
        if was_pending:
            # Keep the flip even though this request fails
            await session.commit()
        raise ApiError.bad_request("This invitation has expired", "INVITATION_EXPIRED")

    if invitation.status != InvitationStatus.PENDING.value:
        raise ApiError.bad_request(
            f"This invitation has already been {invitation.status}", "INVITATION_NOT_PENDING"
        )

    if invitation.email != user.email:
        raise ApiError.bad_request(
            "This invitation was sent to a different email address", "EMAIL_MISMATCH"
        )
    return invitation


async def _close_invitation_notification(
    session: AsyncSession, user: User, invitation: Invitation
) -> None:
    notification = await notification_service.find_invitation_notification(
        session, user.id, invitation.id
    )
    if notification:
        await notification_service.mark_notification_read(session, notification)


async def accept_invitation(
    session: AsyncSession,
    dispatcher: EmailDispatcher,
    invitation_id: uuid.UUID,
    user: User,
) -> AcceptOutcome:
    invitation = await _load_actionable(session, invitation_id, user)
    org = await get_org_or_404(session, invitation.organization_id)

    joined = await add_member(session, org.id, user.id, MemberRole(invitation.role))

    _transition(invitation, InvitationStatus.ACCEPTED)
    session.add(invitation)
    await _close_invitation_notification(session, user, invitation)

    if joined:
        await notification_service.create_notification(
            session,
            user_id=user.id,
            type=NotificationType.INVITATION_ACCEPTED,
            title="Invitation Accepted",
            message=f'You have successfully joined "{org.name}"',
            metadata={"organizationId": org.id, "organizationName": org.name},
            organization_id=org.id,
            invitation_id=invitation.id,
        )
        await notification_service.create_notification(
            session,
            user_id=org.owner_id,
            type=NotificationType.INVITATION_ACCEPTED,
            title="Member Joined",
            message=f'{user.display_name} has accepted your invitation and joined "{org.name}"',
            metadata={
                "organizationId": org.id,
                "organizationName": org.name,
                "userId": user.id,
                "userName": user.display_name,
                "userEmail": user.email,
            },
            organization_id=org.id,
            invitation_id=invitation.id,
        )
        owner = await session.get(User, org.owner_id)
        if owner:
            dispatcher.dispatch(
                owner.email,
                invitation_accepted_email(user.display_name, org.name, get_settings().workspace_url),
                invitation_id=str(invitation.id),
            )

    await session.flush()
    log.info(
        "invitation.accepted",
        invitation_id=str(invitation.id),
        org_id=str(org.id),
        user_id=str(user.id),
        already_member=not joined,
    )
    return AcceptOutcome(invitation=invitation, organization=org, already_member=not joined)


async def reject_invitation(
    session: AsyncSession, invitation_id: uuid.UUID, user: User
) -> Invitation:
    invitation = await _load_actionable(session, invitation_id, user)
    org = await get_org_or_404(session, invitation.organization_id)

    _transition(invitation, InvitationStatus.REJECTED)
    session.add(invitation)
    await _close_invitation_notification(session, user, invitation)

    await notification_service.create_notification(
        session,
        user_id=org.owner_id,
        type=NotificationType.INVITATION_REJECTED,
        title="Invitation Declined",
        message=f'{user.display_name} has declined the invitation to join "{org.name}"',
        metadata={
            "organizationId": org.id,
            "organizationName": org.name,
            "userId": user.id,
            "userName": user.display_name,
            "userEmail": user.email,
        },
        organization_id=org.id,
        invitation_id=invitation.id,
    )
    await session.flush()
    log.info("invitation.rejected", invitation_id=str(invitation.id), org_id=str(org.id))
    return invitation
