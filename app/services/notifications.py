"""
Notification store: the in-app inbox that backs invitations and join requests.

``read`` only ever moves from False to True. The one in-place rewrite is the
unread invitation notification for a (user, organization) pair, which a
re-invitation updates rather than duplicates.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.responses import ApiError
from app.models.base import utcnow
from app.models.notification import Notification
from app.models.user import User
from workspace_shared.schemas.common import NotificationType

log = structlog.get_logger()

LIST_LIMIT = 50


def _jsonable(metadata: dict[str, Any]) -> dict[str, Any]:
    return {
        key: str(value) if isinstance(value, uuid.UUID) else value
        for key, value in metadata.items()
    }


async def create_notification(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    type: NotificationType,
    title: str,
    message: str,
    metadata: Optional[dict[str, Any]] = None,
    organization_id: Optional[uuid.UUID] = None,
    invitation_id: Optional[uuid.UUID] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        meta=_jsonable(metadata or {}),
        organization_id=organization_id,
        invitation_id=invitation_id,
    )
    session.add(notification)
    await session.flush()
    log.info(
        "notification.created",
        notification_id=str(notification.id),
        user_id=str(user_id),
        type=type.value,
    )
    return notification


async def find_unread_invitation_notification(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> Optional[Notification]:
    result = await session.execute(
        select(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.type == NotificationType.INVITATION.value,
            Notification.organization_id == org_id,
            Notification.read == False,  # noqa: E712
        )
        .order_by(Notification.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_invitation_notification(
    session: AsyncSession, user_id: uuid.UUID, invitation_id: uuid.UUID
) -> Optional[Notification]:
    result = await session.execute(
        select(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.type == NotificationType.INVITATION.value,
            Notification.invitation_id == invitation_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def upsert_invitation_notification(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    org_id: uuid.UUID,
    invitation_id: uuid.UUID,
    title: str,
    message: str,
    metadata: dict[str, Any],
) -> Notification:
    """Re-arm the unread invitation notification for (user, org), or create it."""
    existing = await find_unread_invitation_notification(session, user_id, org_id)
    if existing is None:
        return await create_notification(
            session,
            user_id=user_id,
            type=NotificationType.INVITATION,
            title=title,
            message=message,
            metadata=metadata,
            organization_id=org_id,
            invitation_id=invitation_id,
        )

    existing.title = title
    existing.message = message
    existing.meta = _jsonable(metadata)
    existing.invitation_id = invitation_id
    existing.updated_at = utcnow()
    session.add(existing)
    await session.flush()
    log.info(
        "notification.rearmed",
        notification_id=str(existing.id),
        user_id=str(user_id),
        invitation_id=str(invitation_id),
    )
    return existing


async def mark_notification_read(session: AsyncSession, notification: Notification) -> None:
    if notification.read:
        return
    notification.read = True
    notification.updated_at = utcnow()
    session.add(notification)
    await session.flush()


# ---------------------------------------------------------------------------
# Inbox operations
# ---------------------------------------------------------------------------

async def list_notifications(
    session: AsyncSession, user: User
) -> tuple[list[Notification], int]:
    """Newest first, capped at ``LIST_LIMIT``, plus the exact unread count."""
    result = await session.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc())
        .limit(LIST_LIMIT)
    )
    notifications = list(result.scalars().all())

    unread = await session.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user.id, Notification.read == False)  # noqa: E712
    )
    return notifications, unread.scalar_one()


async def mark_read(
    session: AsyncSession, user: User, notification_id: uuid.UUID
) -> Notification:
    notification = await session.get(Notification, notification_id)
    if not notification:
        raise ApiError.bad_request("Notification not found", "NOTIFICATION_NOT_FOUND")
    if notification.user_id != user.id:
        raise ApiError.forbidden("You can only update your own notifications")
    await mark_notification_read(session, notification)
    return notification


async def mark_all_read(session: AsyncSession, user: User) -> int:
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.read == False)  # noqa: E712
        .values(read=True, updated_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    log.info("notification.marked_all_read", user_id=str(user.id), count=result.rowcount)
    return result.rowcount
