"""Tests for /messages."""


def _befriend(client, auth_headers, a, b):
    client.post("/friendship/request", json={"recipientId": b.id}, headers=auth_headers(a))
    client.post("/friendship/accept", json={"requesterId": a.id}, headers=auth_headers(b))


def test_stranger_gets_system_notice(client, auth_headers, db, alice, bob):
    response = client.post(f"/messages/send/{bob.id}", json={"text": "hi"}, headers=auth_headers(alice))

    assert response.status_code == 200
    body = response.json()
    assert body["system"] is True
    assert body["id"] is None
    assert body["senderId"] == bob.id
    assert body["receiverId"] == alice.id
    assert client.get(f"/messages/{bob.id}", headers=auth_headers(alice)).json() == []


def test_friend_message_is_stored(client, auth_headers, alice, bob):
    _befriend(client, auth_headers, alice, bob)

    response = client.post(f"/messages/send/{bob.id}", json={"text": "hi"}, headers=auth_headers(alice))

    assert response.status_code == 201
    assert response.json()["system"] is False
    history = client.get(f"/messages/{alice.id}", headers=auth_headers(bob)).json()
    assert [m["text"] for m in history] == ["hi"]


def test_empty_message_is_bad_request(client, auth_headers, alice, bob):
    _befriend(client, auth_headers, alice, bob)

    response = client.post(f"/messages/send/{bob.id}", json={}, headers=auth_headers(alice))

    assert response.status_code == 400


def test_unknown_receiver_is_not_found(client, auth_headers, alice):
    response = client.post("/messages/send/9999", json={"text": "hi"}, headers=auth_headers(alice))

    assert response.status_code == 404


def test_sidebar_shows_last_message(client, auth_headers, alice, bob, carol):
    _befriend(client, auth_headers, alice, bob)
    client.post(f"/messages/send/{bob.id}", json={"text": "first"}, headers=auth_headers(alice))
    client.post(f"/messages/send/{alice.id}", json={"sticker": "wave"}, headers=auth_headers(bob))

    sidebar = client.get("/messages/users", headers=auth_headers(alice)).json()

    by_id = {u["id"]: u for u in sidebar}
    assert set(by_id) == {bob.id, carol.id}
    assert by_id[bob.id]["lastMessage"]["sticker"] == "wave"
    assert by_id[bob.id]["lastMessage"]["isSentByLoggedInUser"] is False
    assert by_id[carol.id]["lastMessage"] is None
