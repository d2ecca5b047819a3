"""Test broadcast messages and per-user read tracking."""

from __future__ import annotations


def test_mark_read_is_idempotent(any_storage):
    message = any_storage.create_broadcast_message("Maintenance", "Back soon", created_by=1)

    once = any_storage.mark_broadcast_message_read(message.id, 7)
    twice = any_storage.mark_broadcast_message_read(message.id, 7)

    assert once.has_been_read == [7]
    assert twice.has_been_read == [7]


def test_unread_excludes_read_messages(any_storage):
    first = any_storage.create_broadcast_message("One", "First", created_by=1)
    second = any_storage.create_broadcast_message("Two", "Second", created_by=1, priority="high")

    any_storage.mark_broadcast_message_read(first.id, 7)

    assert [m.id for m in any_storage.unread_broadcast_messages(7)] == [second.id]
    assert {m.id for m in any_storage.unread_broadcast_messages(8)} == {first.id, second.id}


def test_mark_read_missing_message(any_storage):
    assert any_storage.mark_broadcast_message_read(404, 7) is None


def test_delete_broadcast(any_storage):
    message = any_storage.create_broadcast_message("One", "First", created_by=1)
    any_storage.mark_broadcast_message_read(message.id, 7)

    assert any_storage.delete_broadcast_message(message.id) is True
    assert any_storage.get_broadcast_message(message.id) is None
    assert any_storage.delete_broadcast_message(message.id) is False


def test_admin_creates_and_users_read(client, admin_headers, user_headers, test_user):
    response = client.post(
        "/api/messages",
        headers=admin_headers,
        json={"title": "Welcome", "message": "Have fun", "priority": "high"},
    )
    assert response.status_code == 201
    message = response.json()
    assert message["priority"] == "high"
    assert message["has_been_read"] == []

    response = client.get("/api/messages?unread=true", headers=user_headers)
    assert [m["id"] for m in response.json()] == [message["id"]]

    for _ in range(2):
        response = client.post(f"/api/messages/{message['id']}/read", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["has_been_read"] == [test_user.id]

    response = client.get("/api/messages?unread=true", headers=user_headers)
    assert response.json() == []

    response = client.get("/api/messages", headers=user_headers)
    assert len(response.json()) == 1


def test_only_admins_broadcast(client, user_headers):
    response = client.post(
        "/api/messages",
        headers=user_headers,
        json={"title": "Hi", "message": "Not allowed"},
    )
    assert response.status_code == 403


def test_invalid_priority_rejected(client, admin_headers):
    response = client.post(
        "/api/messages",
        headers=admin_headers,
        json={"title": "Hi", "message": "x", "priority": "critical"},
    )
    assert response.status_code == 400


def test_delete_message_endpoint(client, admin_headers):
    created = client.post(
        "/api/messages", headers=admin_headers, json={"title": "Hi", "message": "Bye"}
    ).json()

    assert client.delete(f"/api/messages/{created['id']}", headers=admin_headers).status_code == 204
    assert client.delete(f"/api/messages/{created['id']}", headers=admin_headers).status_code == 404


def test_read_missing_message_404(client, user_headers):
    assert client.post("/api/messages/999/read", headers=user_headers).status_code == 404


def test_messages_require_auth(client):
    assert client.get("/api/messages").status_code == 401
