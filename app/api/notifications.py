"""
Notification inbox endpoints.

GET   /api/notifications - Latest notifications plus unread count
PATCH /api/notifications - Mark one (notificationId) or all (markAllAsRead) read
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.core.responses import ApiError, ok
from app.models.user import User
from app.services import notifications as notification_service
from workspace_shared.schemas.notifications import NotificationRead, NotificationUpdateRequest

router = APIRouter()


@router.get("")
async def list_notifications(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    notifications, unread = await notification_service.list_notifications(session, user)
    return ok(
        {
            "notifications": [NotificationRead.model_validate(n) for n in notifications],
            "unreadCount": unread,
        }
    )


@router.patch("")
async def update_notifications(
    body: NotificationUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    if body.mark_all_as_read:
        count = await notification_service.mark_all_read(session, user)
        return ok({"updated": count}, "All notifications marked as read")

    if body.notification_id is None:
        raise ApiError.bad_request("notificationId is required", "MISSING_NOTIFICATION_ID")

    notification = await notification_service.mark_read(session, user, body.notification_id)
    return ok({"notification": NotificationRead.model_validate(notification)}, "Notification marked as read")
