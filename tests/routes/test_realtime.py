"""Tests for the /ws live channel."""

import pytest
from starlette.websockets import WebSocketDisconnect


def test_connect_announces_online_users(client, ws_token, alice):
    alice_id = alice.id

    with client.websocket_connect(f"/ws?token={ws_token(alice)}") as ws:
        assert ws.receive_json() == {"event": "getOnlineUsers", "data": [alice_id]}
        assert alice_id in client.app.state.presence

    assert alice_id not in client.app.state.presence


@pytest.mark.parametrize("query", ["", "?token=", "?token=garbage"])
def test_bad_token_is_refused(client, query):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws{query}"):
            pass

    assert exc_info.value.code == 1008


def test_typing_is_relayed_to_receiver(client, ws_token, alice, bob):
    alice_id, bob_id = alice.id, bob.id
    alice_token, bob_token = ws_token(alice), ws_token(bob)

    with client.websocket_connect(f"/ws?token={alice_token}") as alice_ws:
        alice_ws.receive_json()
        with client.websocket_connect(f"/ws?token={bob_token}") as bob_ws:
            assert bob_ws.receive_json()["data"] == [alice_id, bob_id]
            assert alice_ws.receive_json()["data"] == [alice_id, bob_id]

            # The claimed senderId is ignored; the socket owner is the sender
            alice_ws.send_json({"event": "typing", "data": {"receiverId": bob_id, "senderId": 999}})
            assert bob_ws.receive_json() == {"event": "typing", "data": {"senderId": alice_id}}

            alice_ws.send_json({"event": "stopTyping", "data": {"receiverId": bob_id}})
            assert bob_ws.receive_json() == {"event": "stopTyping", "data": {"senderId": alice_id}}

        assert alice_ws.receive_json()["data"] == [alice_id]


def test_friend_request_is_pushed(client, ws_token, auth_headers, alice, bob):
    alice_id, bob_id = alice.id, bob.id
    bob_headers = auth_headers(bob)

    with client.websocket_connect(f"/ws?token={ws_token(alice)}") as ws:
        ws.receive_json()

        client.post("/friendship/request", json={"recipientId": alice_id}, headers=bob_headers)

        frames = {frame["event"]: frame["data"] for frame in (ws.receive_json(), ws.receive_json())}

    assert frames["friendshipUpdate"]["type"] == "request_sent"
    assert frames["friendshipUpdate"]["friendship"]["requesterId"] == bob_id
    assert frames["notification"]["type"] == "friend_request"
    assert frames["notification"]["recipientId"] == alice_id


def test_message_is_pushed_to_receiver(client, ws_token, auth_headers, make_user, alice):
    dana = make_user("Dana", allow_stranger_message=True)
    dana_id, alice_id = dana.id, alice.id
    alice_headers = auth_headers(alice)

    with client.websocket_connect(f"/ws?token={ws_token(dana)}") as ws:
        ws.receive_json()

        response = client.post(f"/messages/send/{dana_id}", json={"text": "hello"}, headers=alice_headers)
        assert response.status_code == 201

        frame = ws.receive_json()

    assert frame["event"] == "newMessage"
    assert frame["data"]["text"] == "hello"
    assert frame["data"]["senderId"] == alice_id


def test_failed_registration_does_not_leave_entry(client, ws_token, monkeypatch, alice):
    alice_id = alice.id
    presence = client.app.state.presence
    original = presence.broadcast_online_users
    calls = []

    async def flaky_broadcast():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("broadcast failed")
        await original()

    monkeypatch.setattr(presence, "broadcast_online_users", flaky_broadcast)

    with pytest.raises(Exception):
        with client.websocket_connect(f"/ws?token={ws_token(alice)}"):
            pass

    assert alice_id not in presence
