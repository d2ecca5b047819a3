"""Plain record types shared by every storage backend.

Both ``MemStorage`` and ``DatabaseStorage`` hand these out, so routers and
services never see ORM instances or raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class User:
    id: int
    username: str
    password_hash: str
    full_name: str
    role: str = "user"  # "user" | "admin"
    access_level: str = "basic"  # "basic" | "limited" | "full"
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class ChatMessage:
    id: int
    user_id: int
    content: str  # always the moderated text
    timestamp: datetime
    is_deleted: bool = False


@dataclass
class ModerationLogEntry:
    id: int
    user_id: int
    username: str
    original_message: str
    reason: str
    moderation_type: str
    moderated_at: datetime


@dataclass
class UserStrike:
    id: int
    user_id: int
    username: str
    strikes_count: int
    is_chat_restricted: bool
    last_strike_at: datetime | None = None


@dataclass
class BroadcastMessage:
    id: int
    title: str
    message: str
    created_by: int
    priority: str = "normal"
    created_at: datetime | None = None
    expires_at: datetime | None = None
    has_been_read: list[int] = field(default_factory=list)


@dataclass
class GameData:
    id: int
    user_id: int
    game_type: str
    data: dict[str, Any] = field(default_factory=dict)
    high_score: float = 0
    high_score_at: datetime | None = None
    last_played: datetime | None = None


# Counters on CookieClickerData that an admin gift may add to.
COOKIE_CLICKER_RESOURCES = ("cookies", "click_power", "auto_clickers", "grandmas", "factories")


@dataclass
class CookieClickerData:
    id: int
    user_id: int
    cookies: float = 0
    click_power: int = 1
    auto_clickers: int = 0
    grandmas: int = 0
    factories: int = 0
    background: str = "default"
    last_updated: datetime | None = None


@dataclass
class BlockedWord:
    id: int
    word: str
    match_type: str = "exact"  # "exact" | "contains" | "starts_with" | "ends_with"
    added_by: int | None = None
    created_at: datetime | None = None
