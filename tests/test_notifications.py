"""
Tests for the notification inbox.

Covers:
- Listing is capped, newest first, with an exact unread count
- Mark one / mark all read
- Ownership and missing-id errors
"""

from __future__ import annotations

import uuid

import pytest

from app.services.notifications import LIST_LIMIT, create_notification
from workspace_shared.schemas.common import NotificationType


@pytest.fixture
def notify(session_factory):
    async def _notify(user, count: int = 1) -> list[uuid.UUID]:
        ids = []
        async with session_factory() as session:
            for i in range(count):
                note = await create_notification(
                    session,
                    user_id=user.id,
                    type=NotificationType.JOIN_ACCEPTED,
                    title=f"Note {i}",
                    message="Your request was accepted",
                    metadata={"index": i, "organizationId": uuid.uuid4()},
                )
                ids.append(note.id)
            await session.commit()
        return ids

    return _notify


class TestListNotifications:
    @pytest.mark.asyncio
    async def test_cap_and_unread_count(self, client, bob, notify, auth_headers):
        await notify(bob, LIST_LIMIT + 5)
        resp = await client.get("/api/notifications", headers=auth_headers(bob))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data["notifications"]) == LIST_LIMIT
        assert data["unreadCount"] == LIST_LIMIT + 5

        first = data["notifications"][0]
        assert first["type"] == "join_accepted"
        assert first["read"] is False
        assert isinstance(first["metadata"]["organizationId"], str)

    @pytest.mark.asyncio
    async def test_only_own_notifications(self, client, bob, carol, notify, auth_headers):
        await notify(carol, 3)
        resp = await client.get("/api/notifications", headers=auth_headers(bob))
        assert resp.json()["data"] == {"notifications": [], "unreadCount": 0}


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_mark_one(self, client, bob, notify, auth_headers):
        ids = await notify(bob, 3)
        resp = await client.patch(
            "/api/notifications",
            json={"notificationId": str(ids[0])},
            headers=auth_headers(bob),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["notification"]["read"] is True

        listing = await client.get("/api/notifications", headers=auth_headers(bob))
        assert listing.json()["data"]["unreadCount"] == 2

    @pytest.mark.asyncio
    async def test_mark_all(self, client, bob, carol, notify, auth_headers):
        await notify(bob, 4)
        await notify(carol, 2)
        resp = await client.patch(
            "/api/notifications", json={"markAllAsRead": True}, headers=auth_headers(bob)
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {"updated": 4}

        mine = await client.get("/api/notifications", headers=auth_headers(bob))
        assert mine.json()["data"]["unreadCount"] == 0
        theirs = await client.get("/api/notifications", headers=auth_headers(carol))
        assert theirs.json()["data"]["unreadCount"] == 2

    @pytest.mark.asyncio
    async def test_someone_elses_notification(self, client, bob, carol, notify, auth_headers):
        (note_id,) = await notify(carol)
        resp = await client.patch(
            "/api/notifications",
            json={"notificationId": str(note_id)},
            headers=auth_headers(bob),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_notification(self, client, bob, auth_headers):
        resp = await client.patch(
            "/api/notifications",
            json={"notificationId": str(uuid.uuid4())},
            headers=auth_headers(bob),
        )
        assert resp.status_code == 400
        assert resp.json()["errorCode"] == "NOTIFICATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_id(self, client, bob, auth_headers):
        resp = await client.patch("/api/notifications", json={}, headers=auth_headers(bob))
        assert resp.status_code == 400
        assert resp.json()["errorCode"] == "MISSING_NOTIFICATION_ID"
