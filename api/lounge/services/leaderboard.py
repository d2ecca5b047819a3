"""Leaderboard aggregation across game data and user profiles."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from .. import records, settings
from ..cache import cache_get, cache_invalidate, cache_set
from ..storage.base import Storage

logger = logging.getLogger(__name__)

COOKIE_CLICKER = "cookie-clicker"
WORD_SCRAMBLE = "word-scramble"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def public_user(user: records.User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "role": user.role,
        "access_level": user.access_level,
    }


def _word_scramble_stats(data: dict[str, Any]) -> tuple[int, float]:
    """Return (word_count, accuracy percent) from saved word-scramble data."""
    try:
        word_count = int(data.get("wordCount") or 0)
        correct = int(data.get("correctWords") or 0)
    except (TypeError, ValueError):
        return 0, 0.0
    if word_count <= 0:
        return word_count, 0.0
    return word_count, round(correct / word_count * 100, 1)


def _game_entries(
    storage: Storage, game_type: str, users: dict[int, records.User]
) -> list[dict[str, Any]]:
    entries = []
    for record in storage.high_scores(game_type):
        user = users.get(record.user_id)
        if user is None:
            continue
        entry = {
            "id": record.id,
            "user_id": record.user_id,
            "username": user.username,
            "full_name": user.full_name,
            "score": record.high_score,
            "game_type": record.game_type,
            "last_played": _iso(record.last_played),
        }
        if game_type == WORD_SCRAMBLE:
            entry["word_count"], entry["accuracy"] = _word_scramble_stats(record.data)
        entries.append(entry)

    if game_type == WORD_SCRAMBLE:
        # high_scores() already applied the common tie-break; sort() is stable
        entries.sort(key=lambda e: (-e["score"], -e["accuracy"]))
    return entries


def _cookie_clicker_entries(storage: Storage, users: dict[int, records.User]) -> list[dict[str, Any]]:
    entries = []
    for record in storage.cookie_clicker_leaderboard():
        user = users.get(record.user_id)
        if user is None:
            continue
        entries.append(
            {
                "id": record.id,
                "user_id": record.user_id,
                "username": user.username,
                "full_name": user.full_name,
                "score": record.cookies,
                "game_type": COOKIE_CLICKER,
                "last_played": _iso(record.last_updated),
                "cookies": record.cookies,
                "click_power": record.click_power,
                "auto_clickers": record.auto_clickers,
                "grandmas": record.grandmas,
                "factories": record.factories,
                "user": public_user(user),
            }
        )
    return entries


def leaderboard(storage: Storage, game_type: str, limit: int | None = None) -> list[dict[str, Any]]:
    """
    Ranked entries for ``game_type``, best first.

    Scores whose owner no longer exists are dropped before ``limit`` is
    applied, so a full page is returned whenever enough live users have
    played. Results are cached in Redis when it is configured.
    """
    cache_key = f"leaderboard:{game_type}:{limit if limit is not None else 'all'}"
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    users = {u.id: u for u in storage.list_users()}
    if game_type == COOKIE_CLICKER:
        entries = _cookie_clicker_entries(storage, users)
    else:
        entries = _game_entries(storage, game_type, users)

    if limit is not None:
        entries = entries[:limit]
    for rank, entry in enumerate(entries, start=1):
        entry["rank"] = rank

    cache_set(cache_key, entries, ttl=settings.LEADERBOARD_CACHE_TTL)
    return entries


def invalidate_leaderboards(game_type: str | None = None) -> None:
    cache_invalidate(f"leaderboard:{game_type or '*'}:*")
