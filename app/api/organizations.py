"""
Organization endpoints.

GET    /api/org/list - Organizations the user belongs to, with role
GET    /api/org/check-name - Does the user already own an org with this name
POST   /api/org/create - Create an organization (caller becomes owner)
POST   /api/org/join - Ask an organization's owner to let you in
DELETE /api/org/delete - Password-confirmed delete (owner only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.core.email import EmailDispatcher, get_email_dispatcher
from app.core.responses import ok
from app.models.user import User
from app.services import join_requests as join_request_service
from app.services import organizations as org_service
from workspace_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgDeleteRequest,
    OrgJoinRequest,
    OrgListItem,
    OrgRead,
    OrgSummary,
)

router = APIRouter()


@router.get("/list")
async def list_orgs(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await org_service.list_user_orgs(session, user)
    items = [
        OrgListItem.model_validate({**OrgRead.model_validate(org).model_dump(), "role": role})
        for org, role in rows
    ]
    return ok({"organizations": items})


@router.get("/check-name")
async def check_name(
    name: str = Query(..., min_length=1, max_length=100),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    exists = await org_service.check_name(session, name, user)
    return ok({"exists": exists})


@router.post("/create")
async def create_org(
    body: OrgCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.create_org(session, body.clean_name(), user)
    return ok({"organization": OrgRead.model_validate(org)}, "Organization created")


@router.post("/join")
async def join_org(
    body: OrgJoinRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    org, _ = await join_request_service.request_join(session, dispatcher, body.slug, user)
    return ok(
        {"organization": OrgSummary.model_validate(org)},
        "Join request sent. The organization owner will be notified.",
    )


@router.delete("/delete")
async def delete_org(
    body: OrgDeleteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.delete_org(session, body.org_id, body.password, user)
    return ok(message=f'Organization "{org.name}" has been deleted successfully')
