"""Test user administration endpoints."""

from __future__ import annotations

from lounge.auth import verify_password


def test_admin_lists_users(client, admin_headers, test_user):
    response = client.get("/api/users", headers=admin_headers)

    assert response.status_code == 200
    usernames = {u["username"] for u in response.json()}
    assert usernames == {"admin", "alice"}
    assert all("password_hash" not in u for u in response.json())


def test_listing_requires_admin(client, user_headers):
    assert client.get("/api/users", headers=user_headers).status_code == 403


def test_update_user(client, admin_headers, test_user):
    response = client.put(
        f"/api/users/{test_user.id}",
        headers=admin_headers,
        json={"full_name": "Alice Cooper", "access_level": "full"},
    )

    assert response.status_code == 200
    assert response.json()["full_name"] == "Alice Cooper"
    assert response.json()["access_level"] == "full"
    assert response.json()["username"] == "alice"


def test_update_password_is_hashed(client, admin_headers, test_user, storage):
    client.put(f"/api/users/{test_user.id}", headers=admin_headers, json={"password": "newpass"})

    stored = storage.get_user(test_user.id)
    assert stored.password_hash != "newpass"
    assert verify_password("newpass", stored.password_hash)

    login = client.post("/api/login", json={"username": "alice", "password": "newpass"})
    assert login.status_code == 200


def test_update_to_taken_username(client, admin_headers, test_user, other_user):
    response = client.put(f"/api/users/{other_user.id}", headers=admin_headers, json={"username": "alice"})
    assert response.status_code == 400


def test_update_missing_user(client, admin_headers):
    response = client.put("/api/users/999", headers=admin_headers, json={"full_name": "Nobody"})
    assert response.status_code == 404


def test_delete_user(client, admin_headers, test_user, storage):
    assert client.delete(f"/api/users/{test_user.id}", headers=admin_headers).status_code == 204
    assert storage.get_user(test_user.id) is None
    assert client.delete(f"/api/users/{test_user.id}", headers=admin_headers).status_code == 404


def test_admins_cannot_be_deleted(client, admin_headers, admin_user):
    response = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Cannot delete admin user"


def test_delete_requires_admin(client, user_headers, other_user):
    assert client.delete(f"/api/users/{other_user.id}", headers=user_headers).status_code == 403
