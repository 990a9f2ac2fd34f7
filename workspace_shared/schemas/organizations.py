"""
Organization-related Pydantic schemas shared between the API and its clients.

Covers: org create/join/delete requests, member invitations, invitation
actions, join-request actions, and the slug helpers used by both the create
and join flows.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .common import InvitationStatus, JoinRequestAction, MemberRole


_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

MAX_SLUG_LENGTH = 100


def generate_slug(text: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', strip edge hyphens."""
    return _NON_SLUG_CHARS.sub("-", text.lower().strip()).strip("-")


def is_valid_slug(slug: str) -> bool:
    return 1 <= len(slug) <= MAX_SLUG_LENGTH and bool(_SLUG_PATTERN.match(slug))


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")

    def clean_name(self) -> str:
        return self.name.strip()


class OrgJoinRequest(CamelModel):
    slug: str = Field(..., min_length=1, max_length=200)


class OrgDeleteRequest(CamelModel):
    org_id: uuid.UUID
    password: str = Field(..., min_length=1)


class MemberInviteRequest(CamelModel):
    """Owner-issued invitation to an email address."""
    org_id: uuid.UUID
    email: EmailStr
    role: MemberRole = MemberRole.MEMBER


class InvitationActionRequest(CamelModel):
    invitation_id: uuid.UUID


class JoinRequestActionRequest(CamelModel):
    notification_id: uuid.UUID
    action: JoinRequestAction


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgRead(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class OrgSummary(CamelModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID


class OrgListItem(OrgRead):
    role: MemberRole  # the requesting user's role in this org


class MemberUser(CamelModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str


class MemberRead(CamelModel):
    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: MemberRole
    created_at: datetime
    user: Optional[MemberUser] = None


class InvitationRead(CamelModel):
    id: uuid.UUID
    email: str
    status: InvitationStatus
    role: MemberRole
    expires_at: datetime
