"""Test login, token validation and admin-only registration."""

from __future__ import annotations

import jwt

from lounge.auth import JWT_ALGORITHM, JWT_SECRET_KEY, create_access_token, hash_password, verify_password


def test_password_hashing():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)


def test_token_carries_user_id():
    payload = jwt.decode(create_access_token(42), JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    assert payload["user_id"] == "42"
    assert payload["type"] == "access"


def test_login_success(client, test_user):
    response = client.post("/api/login", json={"username": "alice", "password": "password123"})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["id"] == test_user.id
    assert "password_hash" not in body["user"]

    me = client.get("/api/user", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "alice"


def test_login_ignores_username_case(client, test_user):
    response = client.post("/api/login", json={"username": "ALICE", "password": "password123"})
    assert response.status_code == 200


def test_login_wrong_password(client, test_user):
    response = client.post("/api/login", json={"username": "alice", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid username or password"


def test_login_unknown_user(client):
    response = client.post("/api/login", json={"username": "ghost", "password": "password123"})
    assert response.status_code == 401


def test_logout(client, user_headers):
    assert client.post("/api/logout", headers=user_headers).status_code == 200
    assert client.post("/api/logout").status_code == 401


def test_missing_token(client):
    response = client.get("/api/user")
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


def test_garbage_token(client):
    response = client.get("/api/user", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_expired_token(client, test_user):
    token = create_access_token(test_user.id, expires_in_seconds=-60)
    response = client.get("/api/user", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_token_for_deleted_user(client, test_user, user_headers, storage):
    storage.delete_user(test_user.id)
    response = client.get("/api/user", headers=user_headers)
    assert response.status_code == 401


def test_admin_registers_user(client, admin_headers):
    response = client.post(
        "/api/register",
        headers=admin_headers,
        json={"username": "carol", "password": "secret1", "full_name": "Carol King"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "user"
    assert body["access_level"] == "basic"

    login = client.post("/api/login", json={"username": "carol", "password": "secret1"})
    assert login.status_code == 200


def test_register_duplicate_username(client, admin_headers, test_user):
    response = client.post(
        "/api/register",
        headers=admin_headers,
        json={"username": "Alice", "password": "secret1", "full_name": "Another Alice"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Username already exists"


def test_register_requires_admin(client, user_headers):
    response = client.post(
        "/api/register",
        headers=user_headers,
        json={"username": "carol", "password": "secret1", "full_name": "Carol King"},
    )
    assert response.status_code == 403


def test_register_validates_username(client, admin_headers):
    response = client.post(
        "/api/register",
        headers=admin_headers,
        json={"username": "no spaces", "password": "secret1", "full_name": "Nope"},
    )
    assert response.status_code == 400
