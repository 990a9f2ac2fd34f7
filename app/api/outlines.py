"""
Outline endpoints. Members read; only the organization owner writes.

GET    /api/outlines?orgId=… - List outlines, newest first
POST   /api/outlines - Create
PATCH  /api/outlines/{id} - Partial update (body carries orgId)
DELETE /api/outlines/{id}?orgId=… - Delete
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.core.responses import ok
from app.models.user import User
from app.services import outlines as outline_service
from workspace_shared.schemas.outlines import OutlineCreate, OutlineRead, OutlineUpdate

router = APIRouter()


@router.get("")
async def list_outlines(
    org_id: uuid.UUID = Query(..., alias="orgId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    outlines = await outline_service.list_outlines(session, org_id, user)
    return ok({"outlines": [OutlineRead.model_validate(o) for o in outlines]})


@router.post("")
async def create_outline(
    body: OutlineCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    outline = await outline_service.create_outline(session, body, user)
    return ok({"outline": OutlineRead.model_validate(outline)}, "Outline created")


@router.patch("/{outline_id}")
async def update_outline(
    outline_id: uuid.UUID,
    body: OutlineUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    outline = await outline_service.update_outline(session, outline_id, body, user)
    return ok({"outline": OutlineRead.model_validate(outline)}, "Outline updated")


@router.delete("/{outline_id}")
async def delete_outline(
    outline_id: uuid.UUID,
    org_id: uuid.UUID = Query(..., alias="orgId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await outline_service.delete_outline(session, outline_id, org_id, user)
    return ok(message="Outline deleted")
