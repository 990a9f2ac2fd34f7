"""
Invitation endpoints.

POST /api/org/invitations/accept - Accept an invitation addressed to you
POST /api/org/invitations/reject - Decline it
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.core.email import EmailDispatcher, get_email_dispatcher
from app.core.responses import ok
from app.models.user import User
from app.services import invitations as invitation_service
from workspace_shared.schemas.organizations import (
    InvitationActionRequest,
    InvitationRead,
    OrgSummary,
)

router = APIRouter()


@router.post("/accept")
async def accept_invitation(
    body: InvitationActionRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    outcome = await invitation_service.accept_invitation(
        session, dispatcher, body.invitation_id, user
    )
    org = outcome.organization
    data = {
        "alreadyMember": outcome.already_member,
        "organization": OrgSummary.model_validate(org),
        "invitation": InvitationRead.model_validate(outcome.invitation),
    }
    if outcome.already_member:
        return ok(data, "You are already a member of this organization")
    data["member"] = {
        "userId": str(user.id),
        "organizationId": str(org.id),
        "role": outcome.invitation.role,
    }
    return ok(data, f'Successfully joined "{org.name}"')


@router.post("/reject")
async def reject_invitation(
    body: InvitationActionRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    invitation = await invitation_service.reject_invitation(session, body.invitation_id, user)
    return ok({"invitation": InvitationRead.model_validate(invitation)}, "Invitation declined")
