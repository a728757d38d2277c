"""API endpoint tests."""

import time
from unittest.mock import patch

from conftest import auth_headers_for, make_apartment, make_user

from househunt.main import app
from househunt.models import Notification
from househunt.services.auth import create_access_token
from househunt.services.errors import PersistenceError

APARTMENT = {
    "label": "Sunny Loft",
    "address": "12 Elm Street",
    "latitude": 45.5,
    "longitude": -73.6,
    "rent": "$1,850",
    "bedrooms": "2",
}


def registry():
    return app.state.connection_registry


def authenticate(ws, user_id: str, **extra) -> dict:
    ws.send_json({"type": "authenticate", "userId": user_id, **extra})
    return ws.receive_json()


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestAuth:
    """Tests for bearer authentication."""

    def test_requires_token(self, client):
        """Test requests without a token are rejected."""
        assert client.get("/api/auth/user").status_code in (401, 403)

    def test_rejects_invalid_token(self, client):
        """Test an invalid token is rejected."""
        response = client.get("/api/auth/user", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_user_upserted_from_claims(self, client, auth_headers):
        """Test the user is created from token claims."""
        response = client.get("/api/auth/user", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "user-alice"
        assert data["first_name"] == "Alice"
        assert data["email"] == "alice@example.com"


class TestApartments:
    """Tests for apartment endpoints."""

    def test_create_and_list(self, client, auth_headers):
        """Test creating and listing apartments."""
        response = client.post("/api/apartments", headers=auth_headers, json=APARTMENT)
        assert response.status_code == 201
        created = response.json()
        assert created["label"] == "Sunny Loft"
        assert created["created_by"] == "user-alice"
        assert created["comment_count"] == 0
        assert created["is_favorited"] is False
        assert "is_deleted" not in created

        listed = client.get("/api/apartments", headers=auth_headers).json()
        assert [a["id"] for a in listed] == [created["id"]]

    def test_invalid_coordinates(self, client, auth_headers):
        """Test out-of-range coordinates are rejected."""
        response = client.post(
            "/api/apartments", headers=auth_headers, json={**APARTMENT, "latitude": 123}
        )
        assert response.status_code == 422

    def test_missing_apartment(self, client, auth_headers):
        """Test an unknown apartment returns 404."""
        assert client.get("/api/apartments/nope", headers=auth_headers).status_code == 404

    def test_primary_write_failure_is_500(self, client, auth_headers):
        """Test a failed apartment write returns 500."""
        with patch(
            "househunt.api.apartments._commit", side_effect=PersistenceError("db down")
        ):
            response = client.post("/api/apartments", headers=auth_headers, json=APARTMENT)
        assert response.status_code == 500

    def test_notification_failure_does_not_fail_write(self, client, db, auth_headers):
        """Test a notification failure leaves the write successful."""
        make_user(db, "user-bob", first_name="Bob")
        with (
            client.websocket_connect("/ws") as ws,
            patch(
                "househunt.services.notification_records.NotificationRecordService.create_notification",
                side_effect=PersistenceError("db down"),
            ),
        ):
            authenticate(ws, "user-bob")
            response = client.post("/api/apartments", headers=auth_headers, json=APARTMENT)

        assert response.status_code == 201
        assert db.query(Notification).count() == 0


class TestComments:
    """Tests for comment endpoints."""

    def test_comment_notifies_with_truncated_text(self, client, db, auth_headers):
        """Test commenting notifies with the shortened text."""
        make_user(db, "user-bob", first_name="Bob")
        apartment = make_apartment(db, "user-bob")
        text = "Great natural light in the afternoon, but the street noise could be a problem"

        with client.websocket_connect("/ws") as ws:
            authenticate(ws, "user-bob")
            response = client.post(
                f"/api/apartments/{apartment.id}/comments",
                headers=auth_headers,
                json={"text": text},
            )
            frame = ws.receive_json()

        assert response.status_code == 201
        assert frame["type"] == "notification"
        assert frame["data"]["title"] == "New Comment Added"
        expected = f"Alice Martin commented on Sunny Loft: {text[:50]}..."
        assert frame["data"]["message"] == expected
        stored = db.query(Notification).one()
        assert stored.message == expected
        assert stored.user_id == "user-bob"

        comments = client.get(f"/api/apartments/{apartment.id}/comments", headers=auth_headers)
        assert comments.json()[0]["text"] == text
        assert comments.json()[0]["user"]["first_name"] == "Alice"

    def test_comment_on_missing_apartment(self, client, auth_headers):
        """Test commenting on an unknown apartment returns 404."""
        response = client.post(
            "/api/apartments/nope/comments", headers=auth_headers, json={"text": "hello"}
        )
        assert response.status_code == 404


class TestFavorites:
    """Tests for favorite endpoints."""

    def test_toggle_notifies_only_when_favorited(self, client, db, auth_headers):
        """Test only favoriting, not unfavoriting, notifies."""
        make_user(db, "user-bob", first_name="Bob")
        apartment = make_apartment(db, "user-bob")

        with client.websocket_connect("/ws") as ws:
            authenticate(ws, "user-bob")
            first = client.post(f"/api/apartments/{apartment.id}/favorite", headers=auth_headers)
            frame = ws.receive_json()
            second = client.post(f"/api/apartments/{apartment.id}/favorite", headers=auth_headers)

        assert first.json() == {"is_favorited": True}
        assert second.json() == {"is_favorited": False}
        assert frame["data"]["message"] == 'Alice Martin marked "Sunny Loft" as a favorite'
        assert db.query(Notification).count() == 1
        assert client.get("/api/favorites", headers=auth_headers).json() == []


class TestWebSocket:
    """Tests for the WebSocket endpoint."""

    def test_authenticate_registers_channel(self, client):
        """Test authenticating registers the socket until it closes."""
        with client.websocket_connect("/ws") as ws:
            reply = authenticate(ws, "user-bob")
            assert reply == {"type": "authenticated", "userId": "user-bob"}
            assert registry().count_connections() == 1

        assert wait_for(lambda: registry().count_users() == 0)

    def test_invalid_messages_keep_connection_open(self, client):
        """Test invalid frames are ignored."""
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json({"type": "subscribe", "channel": "everything"})
            ws.send_json({"type": "pong"})
            reply = authenticate(ws, "user-bob")
            assert reply["type"] == "authenticated"

    def test_multiple_tabs_and_stats(self, client, auth_headers):
        """Test stats count users and tabs."""
        with client.websocket_connect("/ws") as tab1, client.websocket_connect("/ws") as tab2:
            authenticate(tab1, "user-bob")
            authenticate(tab2, "user-bob")
            stats = client.get("/api/realtime/stats", headers=auth_headers).json()
            assert stats == {"users": 1, "connections": 2}

    def test_actor_receives_nothing(self, client, db, auth_headers):
        """Test the actor's own socket gets no notification."""
        make_user(db, "user-bob", first_name="Bob")

        with (
            client.websocket_connect("/ws") as alice_ws,
            client.websocket_connect("/ws") as bob_ws,
        ):
            authenticate(alice_ws, "user-alice")
            authenticate(bob_ws, "user-bob")
            client.post("/api/apartments", headers=auth_headers, json=APARTMENT)
            frame = bob_ws.receive_json()

        assert frame["data"]["title"] == "New Apartment Added"
        assert frame["data"]["message"] == "Alice Martin added a new apartment: Sunny Loft"
        recipients = [n.user_id for n in db.query(Notification).all()]
        assert recipients == ["user-bob"]

    def test_token_required_when_enabled(self, client):
        """Test a matching token is required when enabled."""
        from househunt.config import get_settings

        settings = get_settings()
        with patch.object(settings, "ws_require_token", True):
            with client.websocket_connect("/ws") as ws:
                ws.send_json({"type": "authenticate", "userId": "user-bob", "token": "bad"})
                good = create_access_token("user-bob")
                reply = authenticate(ws, "user-bob", token=good)

        assert reply == {"type": "authenticated", "userId": "user-bob"}


class TestNotificationEndpoints:
    """Tests for notification feed endpoints."""

    def _seed(self, db):
        make_user(db, "user-alice", first_name="Alice")
        bob = make_user(db, "user-bob", first_name="Bob")
        apartment = make_apartment(db, "user-bob")
        notifications = [
            Notification(
                user_id="user-alice",
                actor_id=bob.id,
                apartment_id=apartment.id,
                type="comment_created",
                title="New Comment Added",
                message=f"Bob commented {i}",
            )
            for i in range(2)
        ]
        db.add_all(notifications)
        db.commit()
        return notifications

    def test_list_and_unread_count(self, client, db, auth_headers):
        """Test listing notifications and the unread count."""
        self._seed(db)

        listed = client.get("/api/notifications", headers=auth_headers).json()
        assert len(listed) == 2
        assert listed[0]["apartment_label"] == "Sunny Loft"
        assert listed[0]["actor_name"] == "Bob"
        count = client.get("/api/notifications/unread-count", headers=auth_headers).json()
        assert count == {"unread": 2}

    def test_mark_read_and_read_all(self, client, db, auth_headers):
        """Test marking one and all notifications read."""
        notifications = self._seed(db)
        first_id = notifications[0].id

        response = client.patch(f"/api/notifications/{first_id}/read", headers=auth_headers)
        assert response.json() == {"success": True, "updated": 1}
        again = client.patch(f"/api/notifications/{first_id}/read", headers=auth_headers)
        assert again.json() == {"success": True, "updated": 0}

        response = client.patch("/api/notifications/read-all", headers=auth_headers)
        assert response.json() == {"success": True, "updated": 1}
        count = client.get("/api/notifications/unread-count", headers=auth_headers).json()
        assert count == {"unread": 0}

    def test_cannot_mark_someone_elses(self, client, db, auth_headers):
        """Test a user cannot mark another user's notification."""
        notifications = self._seed(db)
        bob_headers = auth_headers_for("user-bob")

        notification_id = notifications[0].id
        response = client.patch(f"/api/notifications/{notification_id}/read", headers=bob_headers)

        assert response.json()["updated"] == 0
        db.refresh(notifications[0])
        assert notifications[0].is_read is False


class TestPushEndpoints:
    """Tests for push subscription endpoints."""

    def test_vapid_key(self, client):
        """Test the VAPID public key endpoint."""
        response = client.get("/api/push/vapid-public-key")
        assert response.status_code == 200
        assert "public_key" in response.json()

    def test_subscribe_and_unsubscribe(self, client, auth_headers):
        """Test subscribing and unsubscribing a browser."""
        body = {
            "subscription": {
                "endpoint": "https://push.example/e1",
                "keys": {"p256dh": "p256", "auth": "secret"},
            }
        }
        response = client.post("/api/push/subscribe", headers=auth_headers, json=body)
        assert response.status_code == 200
        assert response.json()["endpoint"] == "https://push.example/e1"

        again = client.post("/api/push/subscribe", headers=auth_headers, json=body)
        assert again.json()["id"] == response.json()["id"]

        removed = client.post(
            "/api/push/unsubscribe",
            headers=auth_headers,
            json={"endpoint": "https://push.example/e1"},
        )
        assert removed.json() == {"success": True, "removed": True}

    def test_subscribe_requires_keys(self, client, auth_headers):
        """Test subscribing without keys returns 422."""
        response = client.post(
            "/api/push/subscribe",
            headers=auth_headers,
            json={"subscription": {"endpoint": "https://push.example/e1"}},
        )
        assert response.status_code == 422

    def test_unsubscribe_requires_endpoint(self, client, auth_headers):
        """Test unsubscribing without an endpoint returns 422."""
        response = client.post("/api/push/unsubscribe", headers=auth_headers, json={})
        assert response.status_code == 422
