"""Test game data storage, cookie clicker grants and game endpoints."""

from __future__ import annotations

import threading

import pytest


def test_grant_is_additive(any_storage):
    assert any_storage.grant_cookie_clicker(1, 100).cookies == 100
    assert any_storage.grant_cookie_clicker(1, 50).cookies == 150


def test_grant_creates_record_from_defaults(any_storage):
    data = any_storage.grant_cookie_clicker(1, 3, "click_power")
    assert data.click_power == 4
    assert data.cookies == 0
    assert data.background == "default"


def test_grant_keeps_concurrent_save(any_storage):
    any_storage.update_cookie_clicker_data(1, {"cookies": 500, "grandmas": 2})
    data = any_storage.grant_cookie_clicker(1, 3, "grandmas")
    assert data.cookies == 500
    assert data.grandmas == 5


@pytest.mark.parametrize(
    ("amount", "resource"),
    [
        (0, "cookies"),
        (-5, "cookies"),
        (10, "sprinkles"),
        (1.5, "factories"),
        (float("inf"), "cookies"),
        (float("inf"), "grandmas"),
        (float("nan"), "cookies"),
    ],
)
def test_invalid_grants_rejected(any_storage, amount, resource):
    with pytest.raises(ValueError):
        any_storage.grant_cookie_clicker(1, amount, resource)
    assert any_storage.get_cookie_clicker_data(1) is None


def test_concurrent_grants_are_not_lost(storage):
    def worker():
        for _ in range(50):
            storage.grant_cookie_clicker(1, 1)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert storage.get_cookie_clicker_data(1).cookies == 200


def test_cookie_clicker_save_overwrites(any_storage):
    any_storage.update_cookie_clicker_data(1, {"cookies": 10, "factories": 1})
    data = any_storage.update_cookie_clicker_data(1, {"cookies": 5, "background": "space"})
    assert data.cookies == 5
    assert data.factories == 1
    assert data.background == "space"


def test_record_game_score_keeps_best(any_storage):
    any_storage.record_game_score(1, "snake", {"length": 10}, 90)
    data = any_storage.record_game_score(1, "snake", {"length": 4}, 30)

    assert data.high_score == 90
    assert data.data == {"length": 4}

    data = any_storage.record_game_score(1, "snake", {"length": 12}, 120)
    assert data.high_score == 120


def test_save_and_update_game_data(any_storage):
    saved = any_storage.save_game_data(1, "tictactoe", {"wins": 1}, high_score=1)
    assert any_storage.get_game_data(1, "tictactoe").data == {"wins": 1}

    updated = any_storage.update_game_data(saved.id, {"data": {"wins": 2}, "high_score": 2})
    assert updated.data == {"wins": 2}
    assert updated.high_score == 2

    assert any_storage.update_game_data(404, {"high_score": 1}) is None
    with pytest.raises(ValueError):
        any_storage.update_game_data(saved.id, {"user_id": 9})


# ============================================================================
# HTTP
# ============================================================================


def test_save_and_load_game(client, user_headers, test_user):
    assert client.get("/api/games/snake", headers=user_headers).status_code == 404

    response = client.post(
        "/api/games/snake/save", headers=user_headers, json={"data": {"level": 2}, "score": 40}
    )
    assert response.status_code == 200
    assert response.json()["high_score"] == 40

    # Score sent as highScore is accepted too
    client.post("/api/games/snake/save", headers=user_headers, json={"highScore": 25})

    response = client.get("/api/games/snake", headers=user_headers)
    body = response.json()
    assert body["user_id"] == test_user.id
    assert body["high_score"] == 40


def test_save_requires_auth(client):
    assert client.post("/api/games/snake/save", json={"score": 1}).status_code == 401


def test_non_finite_score_rejected(client, user_headers, storage, test_user):
    # JSON parsers accept bare Infinity and NaN literals
    for literal in ("Infinity", "NaN"):
        response = client.post(
            "/api/games/snake/save",
            headers={**user_headers, "Content-Type": "application/json"},
            content=f'{{"data": {{}}, "score": {literal}}}',
        )
        assert response.status_code == 400

    assert storage.get_game_data(test_user.id, "snake") is None


def test_non_finite_cookie_save_rejected(client, user_headers):
    response = client.post(
        "/api/games/cookie-clicker/save",
        headers={**user_headers, "Content-Type": "application/json"},
        content='{"cookies": Infinity}',
    )
    assert response.status_code == 400


def test_invalid_game_type_rejected(client, user_headers):
    response = client.post("/api/games/Not A Game!/save", headers=user_headers, json={"score": 1})
    assert response.status_code == 400


def test_cookie_clicker_save_and_load(client, user_headers):
    assert client.get("/api/games/cookie-clicker", headers=user_headers).status_code == 404

    response = client.post(
        "/api/games/cookie-clicker/save",
        headers=user_headers,
        json={"cookies": 1234.5, "click_power": 3, "grandmas": 1},
    )
    assert response.status_code == 200

    body = client.get("/api/games/cookie-clicker", headers=user_headers).json()
    assert body["cookies"] == 1234.5
    assert body["click_power"] == 3
    assert body["grandmas"] == 1


def test_admin_gift(client, admin_headers, test_user, storage):
    response = client.post(
        "/api/games/cookie-clicker/gift",
        headers=admin_headers,
        json={"username": "alice", "gift_type": "cookies", "amount": 100},
    )
    assert response.status_code == 200
    assert response.json()["cookies"] == 100

    response = client.post(
        "/api/games/cookie-clicker/gift",
        headers=admin_headers,
        json={"username": "ALICE", "amount": 50},
    )
    assert response.json()["cookies"] == 150
    assert storage.get_cookie_clicker_data(test_user.id).cookies == 150


@pytest.mark.parametrize("gift_type", ["cookies", "grandmas"])
def test_non_finite_gift_rejected(client, admin_headers, test_user, storage, gift_type):
    response = client.post(
        "/api/games/cookie-clicker/gift",
        headers={**admin_headers, "Content-Type": "application/json"},
        content=f'{{"username": "alice", "gift_type": "{gift_type}", "amount": Infinity}}',
    )
    assert response.status_code == 400
    assert storage.get_cookie_clicker_data(test_user.id) is None


@pytest.mark.parametrize("amount", [0, -10])
def test_gift_requires_positive_amount(client, admin_headers, test_user, amount):
    response = client.post(
        "/api/games/cookie-clicker/gift",
        headers=admin_headers,
        json={"username": "alice", "amount": amount},
    )
    assert response.status_code == 400


def test_gift_unknown_user(client, admin_headers):
    response = client.post(
        "/api/games/cookie-clicker/gift",
        headers=admin_headers,
        json={"username": "ghost", "amount": 10},
    )
    assert response.status_code == 404


def test_gift_is_admin_only(client, user_headers, test_user):
    response = client.post(
        "/api/games/cookie-clicker/gift",
        headers=user_headers,
        json={"username": "alice", "amount": 10},
    )
    assert response.status_code == 403
