"""Tests for Kindred API routes."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from kindred.api.app import kindred_error_handler
from kindred.api.routes import router, ws_router
from kindred.builder import ServiceBuilder
from kindred.core.errors import KindredError
from kindred.infra.event_pusher import WebSocketEventPusher
from kindred.infra.ws_manager import WebSocketManager


# ============ Test App Factory ============

def _create_test_app(service, ws_manager: WebSocketManager | None = None) -> FastAPI:
    """Create a FastAPI app around an already-built service."""
    app = FastAPI()
    app.include_router(router)
    app.include_router(ws_router)
    app.add_exception_handler(KindredError, kindred_error_handler)

    app.state.service = service
    app.state.ws_manager = ws_manager or WebSocketManager()
    return app


@pytest.fixture
def client(service):
    with TestClient(_create_test_app(service)) as c:
        yield c


def _match(client, a: str, b: str, clock) -> dict:
    client.post("/api/swipe", json={"actor_id": a, "target_id": b, "direction": "like"})
    resp = client.post("/api/swipe", json={"actor_id": b, "target_id": a, "direction": "like"})
    clock.advance(30)
    return resp.json()["match"]


# ============ Users ============

class TestUsers:
    def test_register_and_get(self, client):
        resp = client.post("/api/users", json={
            "user_id": "erin", "name": "Erin", "age": 31,
            "interests": ["climbing"], "residence": "Austin, TX",
        })

        assert resp.status_code == 201
        data = resp.json()
        assert data["location"]["label"] == "Austin, Texas"
        assert data["strikes"] == 0

        resp = client.get("/api/users/erin")
        assert resp.status_code == 200
        assert resp.json()["interests"] == ["climbing"]

    def test_register_duplicate(self, client):
        resp = client.post("/api/users", json={"user_id": "alice", "name": "A", "age": 30})

        assert resp.status_code == 409
        assert resp.json()["error"] == "conflict"

    def test_register_underage(self, client):
        resp = client.post("/api/users", json={"user_id": "kid", "name": "Kid", "age": 16})

        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    def test_unknown_user(self, client):
        resp = client.get("/api/users/zed")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_patch_user(self, client):
        resp = client.patch("/api/users/bob", json={"bio": "Jazz nerd"})

        assert resp.status_code == 200
        assert resp.json()["bio"] == "Jazz nerd"
        assert resp.json()["interests"] == ["coffee", "jazz"]

    def test_strikes_and_cooldown(self, client):
        resp = client.get("/api/users/alice/strikes")
        assert resp.json() == {
            "user_id": "alice", "strikes": 0, "banned": False, "strikes_remaining": 3,
        }

        resp = client.get("/api/users/alice/cooldown")
        assert resp.json()["cooling_down"] is False

    def test_discover(self, client):
        resp = client.get("/api/users/bob/discover", params={"limit": 2})

        assert resp.status_code == 200
        data = resp.json()
        assert [c["user_id"] for c in data] == ["alice", "carol"]
        assert "strikes" not in data[0]


# ============ Swipes ============

class TestSwipes:
    def test_swipe_then_cooldown(self, client):
        resp = client.post("/api/swipe", json={
            "actor_id": "alice", "target_id": "bob", "direction": "pass",
        })
        assert resp.status_code == 200
        assert resp.json()["accepted"] is True

        resp = client.post("/api/swipe", json={
            "actor_id": "alice", "target_id": "carol", "direction": "like",
        })
        assert resp.status_code == 429
        assert resp.json()["error"] == "cooldown"
        assert resp.json()["retry_after_seconds"] == pytest.approx(30.0)
        assert resp.headers["Retry-After"] == "30"

        resp = client.get("/api/users/alice/cooldown")
        assert resp.json()["cooling_down"] is True

    def test_mutual_like_creates_match(self, client, clock):
        match = _match(client, "alice", "bob", clock)

        assert match["user_a"] == "alice"
        matches = client.get("/api/users/bob/matches").json()
        assert [m["match_id"] for m in matches] == [match["match_id"]]
        conversations = client.get("/api/users/alice/conversations").json()
        assert conversations[0]["other_user_id"] == "bob"

    def test_invalid_direction(self, client):
        resp = client.post("/api/swipe", json={
            "actor_id": "alice", "target_id": "bob", "direction": "superlike",
        })
        assert resp.status_code == 422

    def test_unsure_and_redecide(self, client):
        client.post("/api/swipe", json={"actor_id": "alice", "target_id": "bob", "direction": "unsure"})

        unsure = client.get("/api/users/alice/unsure").json()
        assert [d["target_id"] for d in unsure] == ["bob"]

        resp = client.post("/api/swipe/redecide", json={
            "actor_id": "alice", "target_id": "bob", "direction": "like",
        })
        assert resp.status_code == 200
        assert resp.json()["redecided"] is True
        assert client.get("/api/users/alice/unsure").json() == []

    def test_received_likes(self, client):
        client.post("/api/swipe", json={"actor_id": "bob", "target_id": "alice", "direction": "like"})

        likes = client.get("/api/users/alice/likes").json()
        assert [p["user_id"] for p in likes] == ["bob"]


# ============ Messages ============

class TestMessages:
    def test_send_list_and_read(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]

        resp = client.post("/api/messages", json={
            "conversation_id": conv_id, "sender_id": "alice", "text": "Hi Bob!",
        })
        assert resp.status_code == 201
        first_id = resp.json()["message_id"]
        client.post("/api/messages", json={
            "conversation_id": conv_id, "sender_id": "alice", "text": "Coffee?",
        })

        page = client.get(
            f"/api/conversations/{conv_id}/messages", params={"user_id": "bob", "limit": 1},
        ).json()
        assert [m["text"] for m in page["messages"]] == ["Hi Bob!"]
        assert page["next_cursor"] == first_id

        rest = client.get(
            f"/api/conversations/{conv_id}/messages",
            params={"user_id": "bob", "since": page["next_cursor"]},
        ).json()
        assert [m["text"] for m in rest["messages"]] == ["Coffee?"]

        resp = client.post(f"/api/conversations/{conv_id}/read", json={"user_id": "bob"})
        assert resp.json()["unread_count"] == 0

    def test_rejected_message(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]

        resp = client.post("/api/messages", json={
            "conversation_id": conv_id, "sender_id": "alice", "text": "badword",
        })

        assert resp.status_code == 422
        assert resp.json()["error"] == "moderation_rejected"
        assert resp.json()["reason"] == "blocked_word"
        assert client.get("/api/users/alice/strikes").json()["strikes"] == 1

    def test_too_long_message(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]

        resp = client.post("/api/messages", json={
            "conversation_id": conv_id, "sender_id": "alice", "text": "x" * 1001,
        })

        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    def test_banned_sender(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]
        for _ in range(3):
            client.post("/api/messages", json={
                "conversation_id": conv_id, "sender_id": "alice", "text": "badword",
            })

        resp = client.post("/api/messages", json={
            "conversation_id": conv_id, "sender_id": "alice", "text": "hello",
        })
        assert resp.status_code == 403
        assert resp.json()["error"] == "banned"

    def test_deferred_send(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]

        resp = client.post("/api/messages", json={
            "conversation_id": conv_id, "sender_id": "alice", "text": "Hi!", "defer": True,
        })

        assert resp.status_code == 202
        submission = resp.json()
        assert submission["sender_id"] == "alice"

        resp = client.get(
            f"/api/submissions/{submission['submission_id']}", params={"user_id": "alice"},
        )
        assert resp.status_code == 200
        assert resp.json()["submission_id"] == submission["submission_id"]

        resp = client.get(
            f"/api/submissions/{submission['submission_id']}", params={"user_id": "bob"},
        )
        assert resp.status_code == 404

    def test_outsider_cannot_list(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]

        resp = client.get(f"/api/conversations/{conv_id}/messages", params={"user_id": "carol"})
        assert resp.status_code == 404

    def test_delete_message(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]
        msg = client.post("/api/messages", json={
            "conversation_id": conv_id, "sender_id": "alice", "text": "oops",
        }).json()

        resp = client.delete(
            f"/api/conversations/{conv_id}/messages/{msg['message_id']}",
            params={"user_id": "bob"},
        )
        assert resp.status_code == 422

        resp = client.delete(
            f"/api/conversations/{conv_id}/messages/{msg['message_id']}",
            params={"user_id": "alice"},
        )
        assert resp.status_code == 200
        assert resp.json()["text"] is None


# ============ Suggestions ============

class TestSuggestions:
    def test_suggestions_with_categories(self, client, clock):
        conv_id = _match(client, "alice", "bob", clock)["conversation_id"]

        resp = client.post(
            f"/api/conversations/{conv_id}/suggestions",
            json={"user_id": "alice", "category": "icebreaker"},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["suggestions"] == ["Hi!", "How are you?", "Coffee?"]
        assert data["fallback"] is False
        assert data["categories"] == ["icebreaker", "casual", "date-idea"]


# ============ WebSocket ============

@pytest.fixture
def ws_client(profile_store, moderator, clock):
    ws_manager = WebSocketManager()
    service = (
        ServiceBuilder()
        .with_profile_store(profile_store)
        .with_event_pusher(WebSocketEventPusher(ws_manager))
        .with_moderator(moderator)
        .with_clock(clock)
        .match_window(0.05)
        .build()
    )
    with TestClient(_create_test_app(service, ws_manager)) as c:
        yield c


class TestWebSocket:
    def test_match_event_delivered(self, ws_client):
        with ws_client.websocket_connect("/ws/alice") as ws:
            ws_client.post("/api/swipe", json={"actor_id": "bob", "target_id": "alice", "direction": "like"})
            ws_client.post("/api/swipe", json={"actor_id": "alice", "target_id": "bob", "direction": "like"})

            event = ws.receive_json()
            assert event["event_type"] == "match.created"
            assert set(event["recipients"]) == {"alice", "bob"}

    def test_unknown_user_rejected(self, ws_client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect("/ws/zed"):
                pass
        assert exc_info.value.code == 4004
