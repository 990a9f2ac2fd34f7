"""
Outline service: org-scoped CRUD. Members read, owners write.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.responses import ApiError
from app.models.base import utcnow
from app.models.outline import Outline
from app.models.user import User
from app.services.access import require_member, require_owner
from workspace_shared.schemas.outlines import OutlineCreate, OutlineUpdate

log = structlog.get_logger()


async def list_outlines(session: AsyncSession, org_id: uuid.UUID, user: User) -> list[Outline]:
    await require_member(session, org_id, user)
    result = await session.execute(
        select(Outline)
        .where(Outline.organization_id == org_id)
        .order_by(Outline.created_at.desc())
    )
    return list(result.scalars().all())


async def create_outline(session: AsyncSession, req: OutlineCreate, user: User) -> Outline:
    await require_owner(session, req.org_id, user)
    outline = Outline(
        organization_id=req.org_id,
        header=req.header,
        section_type=req.section_type.value,
        status=req.status.value,
        target=req.target,
        limit=req.limit,
        reviewer=req.reviewer.value,
    )
    session.add(outline)
    await session.flush()
    log.info("outline.created", outline_id=str(outline.id), org_id=str(req.org_id))
    return outline


async def _get_scoped(
    session: AsyncSession, outline_id: uuid.UUID, org_id: uuid.UUID, user: User
) -> Outline:
    await require_owner(session, org_id, user)
    outline = await session.get(Outline, outline_id)
    if not outline:
        raise ApiError.not_found("Outline not found")
    if outline.organization_id != org_id:
        raise ApiError.bad_request(
            "Outline does not belong to this organization", "ORG_ID_MISMATCH"
        )
    return outline


async def update_outline(
    session: AsyncSession, outline_id: uuid.UUID, req: OutlineUpdate, user: User
) -> Outline:
    outline = await _get_scoped(session, outline_id, req.org_id, user)
    changes = req.changes()
    if not changes:
        raise ApiError.bad_request("No fields to update", "NO_UPDATE_FIELDS")

    for field, value in changes.items():
        setattr(outline, field, value)
    outline.updated_at = utcnow()
    session.add(outline)
    await session.flush()
    log.info("outline.updated", outline_id=str(outline.id), fields=sorted(changes))
    return outline


async def delete_outline(
    session: AsyncSession, outline_id: uuid.UUID, org_id: uuid.UUID, user: User
) -> None:
    outline = await _get_scoped(session, outline_id, org_id, user)
    await session.delete(outline)
    await session.flush()
    log.info("outline.deleted", outline_id=str(outline_id), org_id=str(org_id))
