"""Test leaderboard ranking and aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from lounge.services.leaderboard import leaderboard


def _users(storage, *names):
    return [storage.create_user(name, "hash", name.title()) for name in names]


def test_top_scores_in_order(any_storage):
    a, b, c = _users(any_storage, "a", "b", "c")
    any_storage.record_game_score(a.id, "snake", {}, 50)
    any_storage.record_game_score(b.id, "snake", {}, 90)
    any_storage.record_game_score(c.id, "snake", {}, 70)

    entries = leaderboard(any_storage, "snake", limit=2)

    assert [e["username"] for e in entries] == ["b", "c"]
    assert [e["rank"] for e in entries] == [1, 2]
    assert entries[0]["score"] == 90
    assert entries[0]["full_name"] == "B"
    assert entries[0]["game_type"] == "snake"


def test_ties_go_to_whoever_scored_first(any_storage):
    a, b = _users(any_storage, "a", "b")
    first = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    rec_a = any_storage.record_game_score(a.id, "snake", {}, 80)
    rec_b = any_storage.record_game_score(b.id, "snake", {}, 80)
    any_storage.update_game_data(rec_b.id, {"high_score_at": first})
    any_storage.update_game_data(rec_a.id, {"high_score_at": first + timedelta(minutes=5)})

    assert [e["username"] for e in leaderboard(any_storage, "snake")] == ["b", "a"]


def test_lower_score_does_not_move_tie_break(any_storage):
    a, b = _users(any_storage, "a", "b")
    any_storage.record_game_score(a.id, "snake", {}, 80)
    any_storage.record_game_score(b.id, "snake", {}, 80)
    # a plays again without beating the record
    any_storage.record_game_score(a.id, "snake", {}, 10)

    assert [e["username"] for e in leaderboard(any_storage, "snake")] == ["a", "b"]


def test_deleted_users_are_dropped_before_limit(any_storage):
    a, b, c = _users(any_storage, "a", "b", "c")
    any_storage.record_game_score(a.id, "snake", {}, 100)
    any_storage.record_game_score(b.id, "snake", {}, 90)
    any_storage.record_game_score(c.id, "snake", {}, 80)
    any_storage.delete_user(a.id)

    entries = leaderboard(any_storage, "snake", limit=2)

    assert [e["username"] for e in entries] == ["b", "c"]
    assert entries[0]["rank"] == 1


def test_other_games_are_separate(any_storage):
    (a,) = _users(any_storage, "a")
    any_storage.record_game_score(a.id, "tetris", {}, 10)
    assert leaderboard(any_storage, "snake") == []


def test_word_scramble_ranks_equal_scores_by_accuracy(any_storage):
    a, b = _users(any_storage, "a", "b")
    any_storage.record_game_score(a.id, "word-scramble", {"wordCount": 10, "correctWords": 5}, 5)
    any_storage.record_game_score(b.id, "word-scramble", {"wordCount": 5, "correctWords": 5}, 5)

    entries = leaderboard(any_storage, "word-scramble")

    assert [e["username"] for e in entries] == ["b", "a"]
    assert entries[0]["word_count"] == 5
    assert entries[0]["accuracy"] == 100.0
    assert entries[1]["accuracy"] == 50.0


def test_cookie_clicker_ranked_by_cookies(any_storage):
    a, b = _users(any_storage, "a", "b")
    any_storage.update_cookie_clicker_data(a.id, {"cookies": 10})
    any_storage.grant_cookie_clicker(b.id, 500)

    entries = leaderboard(any_storage, "cookie-clicker")

    assert [e["username"] for e in entries] == ["b", "a"]
    assert entries[0]["cookies"] == 500
    assert entries[0]["user"]["username"] == "b"
    assert "password_hash" not in entries[0]["user"]


def test_leaderboard_endpoint_is_public(client, storage):
    a, b, c = _users(storage, "a", "b", "c")
    storage.record_game_score(a.id, "snake", {}, 50)
    storage.record_game_score(b.id, "snake", {}, 90)
    storage.record_game_score(c.id, "snake", {}, 70)

    response = client.get("/api/leaderboard/snake?limit=2")
    assert response.status_code == 200
    assert [e["username"] for e in response.json()] == ["b", "c"]

    response = client.get("/api/games/snake/leaderboard?limit=2")
    assert [e["username"] for e in response.json()] == ["b", "c"]


def test_cookie_clicker_leaderboard_endpoint(client, storage):
    (a,) = _users(storage, "a")
    storage.grant_cookie_clicker(a.id, 42)

    response = client.get("/api/games/cookie-clicker/leaderboard")
    assert response.status_code == 200
    entry = response.json()[0]
    assert entry["cookies"] == 42
    assert entry["user"]["username"] == "a"


def test_leaderboard_limit_is_bounded(client):
    assert client.get("/api/leaderboard/snake?limit=0").status_code == 400
    assert client.get("/api/leaderboard/snake?limit=1000").status_code == 400
