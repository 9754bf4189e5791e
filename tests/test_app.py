import time

from fastapi.testclient import TestClient

from app import create_app
from relay import SignalingRelay


def wait_for_members(client, room_id, count, timeout=2.0):
    deadline = time.monotonic() + timeout
    current = None
    while time.monotonic() < deadline:
        response = client.get(f"/rooms/{room_id}")
        current = response.json()["member_count"] if response.status_code == 200 else 0
        if current == count:
            return
        time.sleep(0.01)
    raise AssertionError(f"room {room_id} has {current} members, expected {count}")


def test_welcome_carries_connection_id(client):
    with client.websocket_connect("/ws") as ws:
        welcome = ws.receive_json()

    assert welcome["type"] == "system"
    assert welcome["connection_id"]


def test_offer_answer_candidate_over_websocket(client):
    with client.websocket_connect("/ws") as ws_a, client.websocket_connect("/ws") as ws_b:
        a = ws_a.receive_json()["connection_id"]
        b = ws_b.receive_json()["connection_id"]
        assert a != b

        ws_a.send_json({"type": "join", "room": "test_room"})
        ws_b.send_json({"type": "join", "room": "test_room"})
        wait_for_members(client, "test_room", 2)

        ws_a.send_json({"type": "offer", "sdp": "P1", "room": "test_room"})
        assert ws_b.receive_json() == {"type": "offer", "sdp": "P1", "sender": a}

        ws_b.send_json({"type": "answer", "sdp": "P2", "room": "test_room"})
        assert ws_a.receive_json() == {"type": "answer", "sdp": "P2", "sender": b}

        ws_a.send_json({"type": "candidate", "candidate": "C1", "room": "test_room"})
        assert ws_b.receive_json() == {"type": "candidate", "candidate": "C1", "sender": a}


def test_disconnect_removes_member_and_room(client):
    with client.websocket_connect("/ws") as ws_a:
        ws_a.receive_json()
        ws_a.send_json({"type": "join", "room": "test_room"})

        with client.websocket_connect("/ws") as ws_b:
            ws_b.receive_json()
            ws_b.send_json({"type": "join", "room": "test_room"})
            wait_for_members(client, "test_room", 2)

        wait_for_members(client, "test_room", 1)

    wait_for_members(client, "test_room", 0)
    assert client.get("/rooms/").json() == []


def test_malformed_frames_keep_connection_open(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("definitely not json")
        ws.send_json({"type": "join"})
        ws.send_json({"type": "unknown", "room": "lobby"})
        ws.send_json({"type": "join", "room": "lobby"})

        wait_for_members(client, "lobby", 1)


def test_list_rooms(client):
    with client.websocket_connect("/ws") as ws_a, client.websocket_connect("/ws") as ws_b:
        ws_a.receive_json()
        ws_b.receive_json()
        ws_a.send_json({"type": "join", "room": "beta"})
        ws_b.send_json({"type": "join", "room": "alpha"})
        wait_for_members(client, "alpha", 1)
        wait_for_members(client, "beta", 1)

        response = client.get("/rooms/")

    assert response.status_code == 200
    assert response.json() == [
        {"room_id": "alpha", "member_count": 1},
        {"room_id": "beta", "member_count": 1},
    ]


def test_room_details_reports_full_room(client):
    with client.websocket_connect("/ws") as ws_a, client.websocket_connect("/ws") as ws_b:
        ws_a.receive_json()
        ws_b.receive_json()
        ws_a.send_json({"type": "join", "room": "call"})
        ws_b.send_json({"type": "join", "room": "call"})
        wait_for_members(client, "call", 2)

        response = client.get("/rooms/call")

    assert response.json() == {"room_id": "call", "member_count": 2, "is_full": True}


def test_unknown_room_is_404(client):
    response = client.get("/rooms/missing")

    assert response.status_code == 404
    assert response.json() == {"detail": "Room not found"}


def test_separate_apps_do_not_share_rooms(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "join", "room": "private"})
        wait_for_members(client, "private", 1)

        with TestClient(create_app()) as other:
            assert other.get("/rooms/private").status_code == 404


def test_binary_frame_is_dropped(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(b'{"type": "join", "room": "x"}')
        ws.send_json({"type": "join", "room": "lobby"})

        wait_for_members(client, "lobby", 1)
        assert client.get("/rooms/x").status_code == 404


class ExplodingRelay(SignalingRelay):
    async def handle_text(self, connection_id, data):
        if data == "explode":
            raise RuntimeError("handler failure")
        return await super().handle_text(connection_id, data)


def test_abnormal_exit_still_cleans_up():
    relay = ExplodingRelay()
    with TestClient(create_app(relay=relay)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "join", "room": "doomed"})
            wait_for_members(client, "doomed", 1)

            ws.send_text("explode")
            message = ws.receive()

            assert message["type"] == "websocket.close"
            assert message["code"] == 1011

        assert relay.connections == {}
        assert "doomed" not in relay.registry
        assert client.get("/rooms/doomed").status_code == 404
