"""
Relay: handshake auth, per-account fan-out, HTTP completion mirroring

All sockets of a test are opened inside one TestClient context so they share
the app's event loop.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from dsa_mentor.database import engine
from dsa_mentor.main import app
from dsa_mentor.realtime.connection_manager import ConnectionManager
from dsa_mentor.realtime.events import CONGRATULATIONS
from dsa_mentor.tests.conftest import TEST_PASSWORD, auth_headers, unique_email


def register(client: TestClient) -> str:
    response = client.post("/api/auth/register", json={
        "email": unique_email("relay"),
        "password": TEST_PASSWORD,
        "name": "Relay Learner",
    })
    assert response.status_code == 201, response.text
    return response.json()["access_token"]


def sync_url(token: str) -> str:
    return f"/ws/sync?token={token}"


class TestHandshake:

    def test_invalid_token_closes_with_policy_violation(self):
        with TestClient(app) as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect(sync_url("not-a-token")) as ws:
                    ws.receive_json()
        assert exc_info.value.code == 1008

    def test_missing_token_closes_with_policy_violation(self):
        with TestClient(app) as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/ws/sync") as ws:
                    ws.receive_json()
        assert exc_info.value.code == 1008

    def test_token_in_authorization_header(self, fresh_connection_manager):
        with TestClient(app) as client:
            token = register(client)
            with client.websocket_connect("/ws/sync", headers=auth_headers(token)) as ws:
                ws.send_json({"type": "ping"})
                assert ws.receive_json()["type"] == "pong"


class TestFanOut:

    def test_lesson_complete_reaches_all_own_sockets_only(self, fresh_connection_manager):
        with TestClient(app) as client:
            token_a = register(client)
            token_b = register(client)

            with client.websocket_connect(sync_url(token_a)) as first, \
                    client.websocket_connect(sync_url(token_a)) as second, \
                    client.websocket_connect(sync_url(token_b)) as stranger:

                first.send_json({"type": "lesson_complete", "day": 5})

                received = second.receive_json()
                assert received["type"] == "lesson_completed"
                assert received["day"] == 5
                assert received["message"] == CONGRATULATIONS
                assert received["timestamp"]

                echoed = first.receive_json()
                assert echoed["type"] == "lesson_completed"
                assert echoed["day"] == 5

                # Next frame for the other account is its own pong, not the broadcast
                stranger.send_json({"type": "ping"})
                assert stranger.receive_json()["type"] == "pong"

    def test_progress_update_skips_sender(self, fresh_connection_manager):
        with TestClient(app) as client:
            token = register(client)

            with client.websocket_connect(sync_url(token)) as first, \
                    client.websocket_connect(sync_url(token)) as second:

                first.send_json({"type": "progress_update", "data": {"day": 2, "video_watched": True}})

                synced = second.receive_json()
                assert synced == {"type": "progress_sync", "data": {"day": 2, "video_watched": True}}

                # Sender's next frame is its pong, not its own update
                first.send_json({"type": "ping"})
                assert first.receive_json()["type"] == "pong"

    def test_disconnect_leaves_group(self, fresh_connection_manager):
        with TestClient(app) as client:
            token = register(client)

            with client.websocket_connect(sync_url(token)) as first:
                with client.websocket_connect(sync_url(token)) as second:
                    second.send_json({"type": "ping"})
                    second.receive_json()
                    assert fresh_connection_manager.get_connection_count() == 2

                first.send_json({"type": "lesson_complete", "day": 1})
                assert first.receive_json()["type"] == "lesson_completed"
                assert fresh_connection_manager.get_connection_count() == 1


class TestMalformedFrames:

    def test_invalid_json_and_unknown_type_keep_connection(self, fresh_connection_manager):
        with TestClient(app) as client:
            token = register(client)

            with client.websocket_connect(sync_url(token)) as ws:
                ws.send_text("{not json")
                assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

                ws.send_json({"type": "teleport"})
                error = ws.receive_json()
                assert error["type"] == "error"
                assert "Invalid message type" in error["message"]

                ws.send_json({"type": "ping"})
                assert ws.receive_json()["type"] == "pong"


class TestHttpMirroring:

    def test_http_completion_is_announced_on_relay(self, fresh_connection_manager):
        with TestClient(app) as client:
            token = register(client)

            with client.websocket_connect(sync_url(token)) as ws:
                response = client.put("/api/progress/day/1", json={"completed": True}, headers=auth_headers(token))
                assert response.status_code == 200

                announced = ws.receive_json()
                assert announced["type"] == "lesson_completed"
                assert announced["day"] == 1
                assert announced["message"] == CONGRATULATIONS

                # Replaying the completion announces nothing
                client.put("/api/progress/day/1", json={"completed": True}, headers=auth_headers(token))
                ws.send_json({"type": "ping"})
                assert ws.receive_json()["type"] == "pong"


class TestConnectionResources:

    def test_open_sockets_hold_no_database_connection(self, fresh_connection_manager):
        with TestClient(app) as client:
            token = register(client)

            with client.websocket_connect(sync_url(token)) as first:
                first.send_json({"type": "ping"})
                assert first.receive_json()["type"] == "pong"
                checked_out = engine.pool.checkedout()

                with client.websocket_connect(sync_url(token)) as second, \
                        client.websocket_connect(sync_url(token)) as third:
                    for ws in (second, third):
                        ws.send_json({"type": "ping"})
                        assert ws.receive_json()["type"] == "pong"

                    assert fresh_connection_manager.get_connection_count() == 3
                    assert engine.pool.checkedout() <= checked_out

                    response = client.get("/api/progress/stats", headers=auth_headers(token))
                    assert response.status_code == 200


class BrokenSocket:
    async def accept(self):
        return None

    async def send_text(self, message):
        raise RuntimeError("socket already closed")


class TestFailedSend:

    @pytest.mark.asyncio
    async def test_socket_leaves_group_after_failed_send(self):
        manager = ConnectionManager()
        broken = BrokenSocket()
        await manager.connect(broken, 7)

        assert manager.broadcast(7, {"type": "lesson_completed", "day": 1}) == 1
        for _ in range(10):
            if manager.get_connection_count(7) == 0:
                break
            await asyncio.sleep(0)

        assert manager.get_connection_count(7) == 0
        assert manager.broadcast(7, {"type": "lesson_completed", "day": 2}) == 0

        # Receive loop teardown afterwards is still safe
        await manager.disconnect(broken, 7)
        assert manager.sender_tasks == {}
