"""
Membership service: listing, adding and removing organization members.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.responses import ApiError
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.user import User
from app.services.access import get_membership, require_member, require_owner
from workspace_shared.schemas.common import MemberRole

log = structlog.get_logger()


async def add_member(
    session: AsyncSession,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    role: MemberRole = MemberRole.MEMBER,
) -> bool:
    """Insert a membership row. Returns False if the user was already a member.

    The insert runs in a SAVEPOINT so a concurrent insert of the same row
    (unique violation on the composite key) only rolls back this statement.
    """
    if await get_membership(session, org_id, user_id):
        return False
    try:
        async with session.begin_nested():
            session.add(
                OrganizationMember(organization_id=org_id, user_id=user_id, role=role.value)
            )
    except IntegrityError:
        log.info("member.insert_conflict", org_id=str(org_id), user_id=str(user_id))
        return False
    log.info("member.added", org_id=str(org_id), user_id=str(user_id), role=role.value)
    return True


async def list_members(
    session: AsyncSession, org_id: uuid.UUID, user: User
) -> tuple[Organization, list[tuple[OrganizationMember, User]]]:
    """Members with their user record, oldest first. Any member may list."""
    org, _ = await require_member(session, org_id, user)
    result = await session.execute(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(OrganizationMember.organization_id == org_id)
        .order_by(OrganizationMember.created_at.asc())
    )
    return org, [(member, member_user) for member, member_user in result.all()]


async def remove_member(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID, acting: User
) -> None:
    org = await require_owner(session, org_id, acting)
    if user_id == org.owner_id:
        raise ApiError.bad_request(
            "The organization owner cannot be removed", "CANNOT_REMOVE_OWNER"
        )

    membership = await get_membership(session, org_id, user_id)
    if not membership:
        raise ApiError.not_found("Member not found")

    await session.delete(membership)
    await session.flush()
    log.info("member.removed", org_id=str(org_id), user_id=str(user_id), by=str(acting.id))
