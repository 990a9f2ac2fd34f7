"""
Join-request lifecycle.

A request is a ``join_request`` notification addressed to the organization
owner. Its metadata carries everything needed to act on it later, so the
unauthenticated email-link path can resolve it from the notification id and
action alone. A request is processed at most once: the notification is
marked read on every terminal path.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.email import EmailDispatcher
from app.core.email_templates import (
    join_accepted_email,
    join_rejected_email,
    join_request_email,
)
from app.core.responses import ApiError
from app.models.base import ensure_utc, utcnow
from app.models.notification import Notification
from app.models.organization import Organization
from app.models.user import User
from app.services import notifications as notification_service
from app.services.access import get_membership
from app.services.members import add_member
from workspace_shared.schemas.common import JoinRequestAction, MemberRole, NotificationType
from workspace_shared.schemas.organizations import generate_slug, is_valid_slug

log = structlog.get_logger()

JOIN_REQUEST_TTL = timedelta(days=7)


@dataclass
class JoinOutcome:
    message: str
    already_member: bool = False


def action_link(notification_id: uuid.UUID, action: JoinRequestAction) -> str:
    query = urlencode({"notificationId": str(notification_id), "action": action.value})
    return f"{get_settings().base_url.rstrip('/')}/api/org/join-request/action?{query}"


def _parse_expiry(raw: object) -> Optional[datetime]:
    if not isinstance(raw, str):
        return None
    try:
        return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

async def request_join(
    session: AsyncSession,
    dispatcher: EmailDispatcher,
    slug: str,
    user: User,
) -> tuple[Organization, Notification]:
    normalized = generate_slug(slug)
    if not is_valid_slug(normalized):
        raise ApiError.bad_request("Invalid organization slug", "INVALID_SLUG")

    result = await session.execute(select(Organization).where(Organization.slug == normalized))
    org = result.scalar_one_or_none()
    if not org:
        raise ApiError.not_found(
            f'Organization with slug "{normalized}" not found. '
            "Please check the slug and try again."
        )

    if await get_membership(session, org.id, user.id):
        raise ApiError.bad_request(
            "You are already a member of this organization", "ALREADY_MEMBER"
        )

    expires_at = utcnow() + JOIN_REQUEST_TTL
    notification = await notification_service.create_notification(
        session,
        user_id=org.owner_id,
        type=NotificationType.JOIN_REQUEST,
        title="New Join Request",
        message=f'{user.display_name} wants to join "{org.name}"',
        metadata={
            "organizationId": org.id,
            "organizationName": org.name,
            "requestingUserId": user.id,
            "requestingUserName": user.display_name,
            "requestingUserEmail": user.email,
            "expiresAt": expires_at.isoformat(),
        },
        organization_id=org.id,
    )

    owner = await session.get(User, org.owner_id)
    if owner:
        dispatcher.dispatch(
            owner.email,
            join_request_email(
                user.display_name,
                user.email,
                org.name,
                action_link(notification.id, JoinRequestAction.ACCEPT),
                action_link(notification.id, JoinRequestAction.REJECT),
            ),
            notification_id=str(notification.id),
        )

    log.info(
        "join_request.created",
        notification_id=str(notification.id),
        org_id=str(org.id),
        user_id=str(user.id),
    )
    return org, notification


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------

async def resolve_join_request(
    session: AsyncSession,
    dispatcher: EmailDispatcher,
    notification_id: uuid.UUID,
    action: JoinRequestAction,
    acting_owner: Optional[User] = None,
) -> JoinOutcome:
    """Accept or reject a join request.

    ``acting_owner`` is the signed-in user on the API path and None on the
    email-link path.
    """
    notification = await session.get(Notification, notification_id)
    if not notification:
        raise ApiError.not_found("Join request not found")

    if acting_owner is not None and notification.user_id != acting_owner.id:
        raise ApiError.forbidden("You do not have permission to process this request")

    if notification.type != NotificationType.JOIN_REQUEST.value:
        raise ApiError.bad_request("Invalid notification type", "INVALID_NOTIFICATION_TYPE")

    if notification.read:
        raise ApiError.bad_request(
            "This join request has already been processed", "ALREADY_PROCESSED"
        )

    meta = notification.meta or {}
    try:
        org_id = uuid.UUID(str(meta["organizationId"]))
        requester_id = uuid.UUID(str(meta["requestingUserId"]))
    except (KeyError, ValueError):
        raise ApiError.bad_request("Invalid notification metadata", "INVALID_METADATA")

    expires_at = _parse_expiry(meta.get("expiresAt"))
    if expires_at is not None and expires_at <= utcnow():
        await notification_service.mark_notification_read(session, notification)
        # Keep the read flag even though this request fails
        await session.commit()
        raise ApiError.bad_request(
            f"This join request has expired. It was valid until {expires_at.date().isoformat()}.",
            "JOIN_REQUEST_EXPIRED",
        )

    org = await session.get(Organization, org_id)
    if not org:
        raise ApiError.not_found("Organization not found")
    if org.owner_id != notification.user_id:
        raise ApiError.forbidden("You do not have permission to process this request")

    requester = await session.get(User, requester_id)
    workspace_url = get_settings().workspace_url

    if action == JoinRequestAction.ACCEPT:
        joined = await add_member(session, org.id, requester_id, MemberRole.MEMBER)
        if not joined:
            await notification_service.mark_notification_read(session, notification)
            log.info(
                "join_request.already_member",
                notification_id=str(notification.id),
                org_id=str(org.id),
                user_id=str(requester_id),
            )
            return JoinOutcome("User is already a member", already_member=True)

        await notification_service.create_notification(
            session,
            user_id=requester_id,
            type=NotificationType.JOIN_ACCEPTED,
            title="Join Request Accepted",
            message=f'Your request to join "{org.name}" has been accepted!',
            metadata={"organizationId": org.id, "organizationName": org.name},
            organization_id=org.id,
        )
        if requester:
            dispatcher.dispatch(
                requester.email,
                join_accepted_email(org.name, workspace_url),
                notification_id=str(notification.id),
            )
        await notification_service.mark_notification_read(session, notification)
        log.info(
            "join_request.accepted",
            notification_id=str(notification.id),
            org_id=str(org.id),
            user_id=str(requester_id),
        )
        return JoinOutcome("Join request accepted")

    await notification_service.create_notification(
        session,
        user_id=requester_id,
        type=NotificationType.JOIN_REJECTED,
        title="Join Request Rejected",
        message=f'Your request to join "{org.name}" has been rejected.',
        metadata={"organizationId": org.id, "organizationName": org.name},
        organization_id=org.id,
    )
    if requester:
        dispatcher.dispatch(
            requester.email,
            join_rejected_email(org.name),
            notification_id=str(notification.id),
        )
    await notification_service.mark_notification_read(session, notification)
    log.info(
        "join_request.rejected",
        notification_id=str(notification.id),
        org_id=str(org.id),
        user_id=str(requester_id),
    )
    return JoinOutcome("Join request rejected")
