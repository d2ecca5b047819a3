"""Test leaderboard caching on top of the Redis helpers."""

from __future__ import annotations

import fnmatch

import pytest
import redis

from lounge import cache
from lounge.services.leaderboard import invalidate_leaderboards, leaderboard


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def scan_iter(self, match):
        return [k for k in list(self.store) if fnmatch.fnmatchcase(k, match)]

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)
        return len(keys)


class BrokenRedis(FakeRedis):
    def get(self, key):
        raise redis.ConnectionError("down")

    def setex(self, key, ttl, value):
        raise redis.ConnectionError("down")


@pytest.fixture()
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(cache, "get_redis_client", lambda: client)
    return client


def test_no_redis_means_no_cache():
    assert cache.cache_set("k", {"a": 1}, ttl=5) is False
    assert cache.cache_get("k") is None
    assert cache.cache_invalidate("*") == 0


def test_leaderboard_is_cached_until_invalidated(storage, fake_redis):
    alice = storage.create_user("alice", "hash", "Alice")
    storage.record_game_score(alice.id, "snake", {}, 10)
    assert leaderboard(storage, "snake", limit=5)[0]["score"] == 10
    assert "leaderboard:snake:5" in fake_redis.store

    storage.record_game_score(alice.id, "snake", {}, 99)
    assert leaderboard(storage, "snake", limit=5)[0]["score"] == 10

    invalidate_leaderboards("snake")
    assert leaderboard(storage, "snake", limit=5)[0]["score"] == 99


def test_invalidation_is_scoped_to_game(fake_redis):
    cache.cache_set("leaderboard:snake:all", [], ttl=5)
    cache.cache_set("leaderboard:tetris:all", [], ttl=5)

    invalidate_leaderboards("snake")
    assert list(fake_redis.store) == ["leaderboard:tetris:all"]

    invalidate_leaderboards()
    assert fake_redis.store == {}


def test_undecodable_entry_is_a_miss(fake_redis):
    fake_redis.store["k"] = "{not json"
    assert cache.cache_get("k") is None


def test_redis_errors_degrade_to_misses(monkeypatch):
    monkeypatch.setattr(cache, "get_redis_client", lambda: BrokenRedis())
    assert cache.cache_get("k") is None
    assert cache.cache_set("k", [1], ttl=5) is False
