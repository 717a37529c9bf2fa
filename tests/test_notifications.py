# =============================================================================
# tests/test_notifications.py - Notification and WebSocket Tests
# =============================================================================
# Run with: pytest tests/test_notifications.py -v
# =============================================================================

import asyncio
import json

import pytest
from starlette.websockets import WebSocketDisconnect

from app.websocket.broadcast import EVENT_SESSIONS_REVOKED, WEBSOCKET_CHANNEL
from app.websocket.manager import SESSION_REVOKED_CLOSE_CODE, ConnectionManager
from core.models.notification import NotificationType
from core.services.notification_service import NotificationService
from tests.conftest import API

NOTIFICATIONS = f"{API}/notifications"


def notify(user, title="Something happened", kind=NotificationType.POST_REPLY):
    return NotificationService.notify(user.id, kind, title=title)


class TestNotify:
    """Storing and publishing notifications."""

    def test_notify_stores_and_publishes(self, fake_db, fake_redis, member):
        row = notify(member, title="Hello")

        assert fake_db.row("notifications", id=row["id"])["is_read"] is False
        channel, message = fake_redis.published[-1]
        event = json.loads(message)
        assert channel == WEBSOCKET_CHANNEL
        assert event["user_id"] == member.id
        assert event["type"] == "notification"
        assert event["notification"]["title"] == "Hello"
        assert "user_id" not in event["notification"]

    def test_publish_failure_keeps_the_row(self, fake_db, fake_redis, member, monkeypatch):
        def broken(*args):
            raise ConnectionError("redis down")

        monkeypatch.setattr(fake_redis, "publish", broken)

        row = notify(member)

        assert fake_db.row("notifications", id=row["id"]) is not None


class TestNotificationEndpoints:
    """Listing and marking notifications read."""

    def test_list_and_filter(self, client, member):
        notify(member, kind=NotificationType.POST_REPLY)
        notify(member, kind=NotificationType.ORDER_STATUS)

        everything = client.get(NOTIFICATIONS, headers=member.headers).json()
        orders = client.get(NOTIFICATIONS, params={"type": "order_status"}, headers=member.headers).json()

        assert everything["pagination"]["records"] == 2
        assert [n["type"] for n in orders["data"]] == ["order_status"]

    def test_mark_one_read(self, client, member):
        row = notify(member)

        read = client.post(f"{NOTIFICATIONS}/{row['id']}/read", headers=member.headers).json()
        count = client.get(f"{NOTIFICATIONS}/unread-count", headers=member.headers).json()

        assert read["is_read"] is True
        assert read["read_at"] is not None
        assert count == {"unread": 0}

    def test_mark_all_read(self, client, member):
        notify(member)
        notify(member)

        response = client.post(f"{NOTIFICATIONS}/read-all", headers=member.headers)

        assert response.json() == {"updated": 2}
        assert client.get(f"{NOTIFICATIONS}/unread-count", headers=member.headers).json() == {"unread": 0}

    def test_cannot_read_someone_elses(self, client, make_user, member):
        row = notify(member)

        response = client.post(f"{NOTIFICATIONS}/{row['id']}/read", headers=make_user().headers)

        assert response.status_code == 404
        assert response.json()["code"] == "NOTIFICATION_NOT_FOUND"


class TestWebSocket:
    """The /ws/notifications endpoint."""

    def test_connect_reports_unread_count(self, client, member):
        notify(member)

        with client.websocket_connect(f"/ws/notifications?token={member.access}") as ws:
            greeting = ws.receive_json()
            ws.send_text("ping")
            pong = ws.receive_text()

        assert greeting == {"type": "connected", "unread": 1}
        assert pong == "pong"

    def test_bad_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/notifications?token=garbage") as ws:
                ws.receive_json()


# =============================================================================
# Connection Manager
# =============================================================================

class FakeSocket:
    """Records what the manager does to a socket."""

    def __init__(self, broken=False):
        self.broken = broken
        self.sent = []
        self.closed_with = None

    async def accept(self):
        pass

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError("socket gone")
        self.sent.append(message)

    async def close(self, code=1000, reason=None):
        self.closed_with = code


class TestConnectionManager:

    def test_broadcast_reaches_every_tab_and_drops_dead_ones(self):
        manager = ConnectionManager()
        tab1, tab2, dead = FakeSocket(), FakeSocket(), FakeSocket(broken=True)

        async def scenario():
            for socket in (tab1, tab2, dead):
                await manager.connect("u1", "s1", socket)
            return await manager.broadcast("u1", {"type": "notification"})

        sent = asyncio.run(scenario())

        assert sent == 2
        assert tab1.sent == [{"type": "notification"}]
        assert manager.count("u1") == 2

    def test_close_sessions_only_closes_matching_sockets(self):
        manager = ConnectionManager()
        phone, laptop = FakeSocket(), FakeSocket()

        async def scenario():
            await manager.connect("u1", "phone-session", phone)
            await manager.connect("u1", "laptop-session", laptop)
            return await manager.close_sessions("u1", ["phone-session"])

        closed = asyncio.run(scenario())

        assert closed == 1
        assert phone.closed_with == SESSION_REVOKED_CLOSE_CODE
        assert laptop.closed_with is None
        assert manager.count() == 1


class TestSessionRevocationEvents:
    """Revoking sessions tells the API processes to drop their sockets."""

    def revocations(self, fake_redis):
        events = [json.loads(message) for _, message in fake_redis.published]
        return [event for event in events if event["type"] == EVENT_SESSIONS_REVOKED]

    def test_logout_all_publishes_revoked_sessions(self, client, fake_db, fake_redis, member):
        client.post(f"{API}/auth/logout-all", headers=member.headers)

        [event] = self.revocations(fake_redis)
        assert event["user_id"] == member.id
        assert {row["id"] for row in fake_db.rows("auth_sessions", user_id=member.id)} == set(event["session_ids"])

    def test_refresh_rotation_keeps_sockets(self, client, fake_redis, member):
        client.post(f"{API}/auth/refresh", json={"refresh_token": member.refresh})

        assert self.revocations(fake_redis) == []
