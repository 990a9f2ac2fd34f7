"""
Member endpoints.

GET    /api/org/members?orgId=… - List members (any member)
POST   /api/org/members - Invite by email (owner only)
DELETE /api/org/members?orgId=…&userId=… - Remove a member (owner only)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.core.email import EmailDispatcher, get_email_dispatcher
from app.core.responses import ok
from app.models.user import User
from app.services import invitations as invitation_service
from app.services import members as member_service
from workspace_shared.schemas.organizations import (
    InvitationRead,
    MemberInviteRequest,
    MemberRead,
    MemberUser,
    OrgSummary,
)

router = APIRouter()


@router.get("")
async def list_members(
    org_id: uuid.UUID = Query(..., alias="orgId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    org, rows = await member_service.list_members(session, org_id, user)
    members = [
        MemberRead(
            organization_id=member.organization_id,
            user_id=member.user_id,
            role=member.role,
            created_at=member.created_at,
            user=MemberUser.model_validate(member_user),
        )
        for member, member_user in rows
    ]
    return ok({"members": members, "organization": OrgSummary.model_validate(org)})


@router.post("")
async def invite_member(
    body: MemberInviteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    invitation = await invitation_service.invite(
        session,
        dispatcher,
        org_id=body.org_id,
        email=str(body.email),
        role=body.role,
        inviter=user,
    )
    return ok(
        {"invitation": InvitationRead.model_validate(invitation)},
        "Invitation sent successfully. The user will be notified.",
    )


@router.delete("")
async def remove_member(
    org_id: uuid.UUID = Query(..., alias="orgId"),
    user_id: uuid.UUID = Query(..., alias="userId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await member_service.remove_member(session, org_id, user_id, user)
    return ok(message="Member removed successfully")
