"""
Organization access checks shared by every org-scoped operation.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.responses import ApiError
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.user import User


async def get_membership(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[OrganizationMember]:
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_org_or_404(session: AsyncSession, org_id: uuid.UUID) -> Organization:
    org = await session.get(Organization, org_id)
    if not org:
        raise ApiError.not_found("Organization not found")
    return org


async def require_member(
    session: AsyncSession, org_id: uuid.UUID, user: User
) -> tuple[Organization, OrganizationMember]:
    """Organization must exist and ``user`` must belong to it."""
    org = await get_org_or_404(session, org_id)
    membership = await get_membership(session, org_id, user.id)
    if not membership:
        raise ApiError.forbidden("You don't have access to this organization")
    return org, membership


async def require_owner(session: AsyncSession, org_id: uuid.UUID, user: User) -> Organization:
    """Organization must exist and ``user`` must be its owner."""
    org = await get_org_or_404(session, org_id)
    if org.owner_id != user.id:
        raise ApiError.forbidden("Only the organization owner can perform this action")
    return org
