"""
Organization service: create, list, name check and delete.
"""

from __future__ import annotations

import secrets
import time
import uuid

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import verify_password
from app.core.responses import ApiError
from app.models.invitation import Invitation
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.outline import Outline
from app.models.user import User
from app.services import notifications as notification_service
from app.services.access import get_org_or_404
from workspace_shared.schemas.common import MemberRole, NotificationType
from workspace_shared.schemas.organizations import MAX_SLUG_LENGTH, generate_slug

log = structlog.get_logger()

MAX_SLUG_ATTEMPTS = 20
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
# "-" + 6 stamp digits + "-" + 4 random digits
_SUFFIX_LENGTH = 12


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def suffixed_slug(base: str) -> str:
    """``{base}-{last 6 base36 digits of epoch millis}-{4 random base36}``.

    ``base`` is shortened so the result never exceeds ``MAX_SLUG_LENGTH``.
    """
    stamp = _to_base36(int(time.time() * 1000))[-6:]
    noise = "".join(secrets.choice(_BASE36) for _ in range(4))
    base = base[: MAX_SLUG_LENGTH - _SUFFIX_LENGTH].rstrip("-")
    return f"{base}-{stamp}-{noise}"


async def _slug_taken(session: AsyncSession, slug: str) -> bool:
    result = await session.execute(select(Organization.id).where(Organization.slug == slug))
    return result.first() is not None


async def create_org(session: AsyncSession, name: str, owner: User) -> Organization:
    """Create an organization and its single owner membership."""
    name = name.strip()
    if not name or len(name) > 100:
        raise ApiError.bad_request("Organization name must be 1-100 characters", "INVALID_NAME")

    duplicate = await session.execute(
        select(Organization.id).where(Organization.owner_id == owner.id, Organization.name == name)
    )
    if duplicate.first() is not None:
        raise ApiError.bad_request(
            f'You already have an organization named "{name}"', "DUPLICATE_ORG_NAME"
        )

    base = generate_slug(name)
    if not base:
        raise ApiError.bad_request(
            "Organization name must contain letters or numbers", "INVALID_NAME"
        )

    org: Organization | None = None
    for attempt in range(MAX_SLUG_ATTEMPTS):
        slug = base if attempt == 0 else suffixed_slug(base)
        if await _slug_taken(session, slug):
            continue
        candidate = Organization(name=name, slug=slug, owner_id=owner.id)
        try:
            async with session.begin_nested():
                session.add(candidate)
        except IntegrityError:
            # Lost a race for the slug
            log.info("org.slug_conflict", slug=slug, attempt=attempt + 1)
            continue
        org = candidate
        break

    if org is None:
        log.error("org.slug_exhausted", base=base, attempts=MAX_SLUG_ATTEMPTS)
        raise ApiError.bad_request(
            "Could not generate a unique identifier for this organization",
            "SLUG_GENERATION_FAILED",
        )

    session.add(
        OrganizationMember(
            organization_id=org.id, user_id=owner.id, role=MemberRole.OWNER.value
        )
    )
    await session.flush()

    log.info("org.created", org_id=str(org.id), slug=org.slug, owner=str(owner.id))
    return org


async def list_user_orgs(
    session: AsyncSession, user: User
) -> list[tuple[Organization, str]]:
    """Organizations ``user`` belongs to with their role, newest membership first."""
    result = await session.execute(
        select(Organization, OrganizationMember.role)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .where(OrganizationMember.user_id == user.id)
        .order_by(OrganizationMember.created_at.desc())
    )
    return [(org, role) for org, role in result.all()]


async def check_name(session: AsyncSession, name: str, user: User) -> bool:
    """True if ``user`` already owns an organization called ``name``."""
    result = await session.execute(
        select(Organization.id).where(
            Organization.owner_id == user.id, Organization.name == name.strip()
        )
    )
    return result.first() is not None


async def delete_org(
    session: AsyncSession, org_id: uuid.UUID, password: str, user: User
) -> Organization:
    """Password-confirmed delete by the owner. Non-owner members are notified."""
    org = await get_org_or_404(session, org_id)
    if org.owner_id != user.id:
        raise ApiError.forbidden("Only the organization owner can delete the organization")

    if not user.password_hash:
        raise ApiError.bad_request(
            "Password verification failed. Please ensure your account has a password set.",
            "NO_PASSWORD",
        )
    if not verify_password(password, user.password_hash):
        raise ApiError.bad_request("Incorrect password. Please try again.", "INVALID_PASSWORD")

    result = await session.execute(
        select(OrganizationMember.user_id).where(
            OrganizationMember.organization_id == org.id,
            OrganizationMember.user_id != org.owner_id,
        )
    )
    member_ids = list(result.scalars().all())
    for member_id in member_ids:
        await notification_service.create_notification(
            session,
            user_id=member_id,
            type=NotificationType.ORGANIZATION_DELETED,
            title="Organization Deleted",
            message=f'The organization "{org.name}" has been deleted by its owner',
            metadata={"organizationId": org.id, "organizationName": org.name},
            organization_id=org.id,
        )

    await session.execute(delete(OrganizationMember).where(OrganizationMember.organization_id == org.id))
    await session.execute(delete(Outline).where(Outline.organization_id == org.id))
    await session.execute(delete(Invitation).where(Invitation.organization_id == org.id))
    await session.delete(org)
    await session.flush()

    log.info("org.deleted", org_id=str(org.id), slug=org.slug, notified=len(member_ids))
    return org
