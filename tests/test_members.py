"""
Tests for organization membership endpoints.

Covers:
- Listing members (any member) with user details
- Owner-only removal; the owner can never be removed
- Idempotent add_member
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlmodel import select
from structlog.testing import capture_logs

from app.models.organization_member import OrganizationMember
from app.services.members import add_member


@pytest.fixture
def join(session_factory):
    async def _join(org, user) -> bool:
        async with session_factory() as session:
            added = await add_member(session, org.id, user.id)
            await session.commit()
            return added

    return _join


class TestAddMember:
    @pytest.mark.asyncio
    async def test_second_add_is_noop(self, join, org, bob):
        assert await join(org, bob) is True
        assert await join(org, bob) is False

    @pytest.mark.asyncio
    async def test_concurrent_insert_is_treated_as_member(self, join, org, bob, session_factory):
        await join(org, bob)
        # the pre-check misses a row committed by a racing request
        with patch("app.services.members.get_membership", new=AsyncMock(return_value=None)), \
             capture_logs() as logs:
            async with session_factory() as session:
                added = await add_member(session, org.id, bob.id)
                await session.commit()
        assert added is False
        assert [e["event"] for e in logs] == ["member.insert_conflict"]

        async with session_factory() as session:
            result = await session.execute(
                select(OrganizationMember).where(
                    OrganizationMember.organization_id == org.id,
                    OrganizationMember.user_id == bob.id,
                )
            )
            rows = result.scalars().all()
        assert len(rows) == 1
        assert rows[0].role == "member"


class TestListMembers:
    @pytest.mark.asyncio
    async def test_member_can_list(self, client, join, org, owner, bob, auth_headers):
        await join(org, bob)
        resp = await client.get(
            "/api/org/members", params={"orgId": str(org.id)}, headers=auth_headers(bob)
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["organization"]["id"] == str(org.id)
        roles = {m["userId"]: m["role"] for m in data["members"]}
        assert roles == {str(owner.id): "owner", str(bob.id): "member"}
        emails = {m["user"]["email"] for m in data["members"]}
        assert emails == {owner.email, bob.email}

    @pytest.mark.asyncio
    async def test_outsider_forbidden(self, client, org, carol, auth_headers):
        resp = await client.get(
            "/api/org/members", params={"orgId": str(org.id)}, headers=auth_headers(carol)
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_org(self, client, carol, auth_headers):
        resp = await client.get(
            "/api/org/members", params={"orgId": str(uuid.uuid4())}, headers=auth_headers(carol)
        )
        assert resp.status_code == 404


class TestRemoveMember:
    async def _remove(self, client, headers, org, user_id):
        return await client.delete(
            "/api/org/members",
            params={"orgId": str(org.id), "userId": str(user_id)},
            headers=headers,
        )

    @pytest.mark.asyncio
    async def test_owner_removes_member(self, client, join, org, owner, bob, auth_headers):
        await join(org, bob)
        resp = await self._remove(client, auth_headers(owner), org, bob.id)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Member removed successfully"

        again = await self._remove(client, auth_headers(owner), org, bob.id)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_owner_cannot_be_removed(self, client, org, owner, auth_headers):
        resp = await self._remove(client, auth_headers(owner), org, owner.id)
        assert resp.status_code == 400
        assert resp.json()["errorCode"] == "CANNOT_REMOVE_OWNER"

    @pytest.mark.asyncio
    async def test_member_cannot_remove(self, client, join, org, bob, carol, auth_headers):
        await join(org, bob)
        await join(org, carol)
        resp = await self._remove(client, auth_headers(bob), org, carol.id)
        assert resp.status_code == 403
