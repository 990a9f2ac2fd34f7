"""
Join-request resolution endpoints.

POST /api/notifications/join-request - Owner accepts/rejects from the inbox
GET  /api/org/join-request/action - Same, from the link in the owner's email
"""

from __future__ import annotations

import uuid
from typing import Optional
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.config import get_settings
from app.core.database import get_session
from app.core.email import EmailDispatcher, get_email_dispatcher
from app.core.responses import ApiError, ok
from app.models.user import User
from app.services import join_requests as join_request_service
from workspace_shared.schemas.common import JoinRequestAction
from workspace_shared.schemas.organizations import JoinRequestActionRequest

log = structlog.get_logger()

inbox_router = APIRouter()
email_link_router = APIRouter()


@inbox_router.post("/join-request")
async def resolve_join_request(
    body: JoinRequestActionRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    outcome = await join_request_service.resolve_join_request(
        session, dispatcher, body.notification_id, body.action, acting_owner=user
    )
    data = {"alreadyMember": True} if outcome.already_member else None
    return ok(data, outcome.message)


def _workspace_redirect(**params: str) -> RedirectResponse:
    url = f"{get_settings().workspace_url}?{urlencode(params)}"
    return RedirectResponse(url, status_code=303)


@email_link_router.get("/join-request/action")
async def join_request_email_action(
    notification_id: Optional[str] = Query(None, alias="notificationId"),
    action: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    """Unauthenticated: the opaque notification id is the capability."""
    if not notification_id or not action:
        return _workspace_redirect(error="Missing notificationId or action parameter")
    try:
        parsed_action = JoinRequestAction(action)
    except ValueError:
        return _workspace_redirect(error="Invalid action. Must be 'accept' or 'reject'")
    try:
        parsed_id = uuid.UUID(notification_id)
    except ValueError:
        return _workspace_redirect(error="Join request not found or has already been processed")

    try:
        outcome = await join_request_service.resolve_join_request(
            session, dispatcher, parsed_id, parsed_action
        )
    except ApiError as exc:
        log.info(
            "join_request.email_action_failed",
            notification_id=notification_id,
            error_code=exc.error_code,
        )
        return _workspace_redirect(error=exc.error)

    return _workspace_redirect(message=outcome.message)
