"""In-memory storage with an optional JSON-file fallback.

Without a ``data_dir`` everything lives in process memory. With one, each
collection is mirrored to its own JSON file (``users.json``,
``chat_messages.json``, ``messages.json``, ...) which is rewritten wholesale
after every mutation and read back on start.

All access goes through one re-entrant lock, so read-modify-write sequences
such as strike increments and cookie grants cannot interleave. This only
holds inside a single process; do not point two instances at the same
``data_dir``.
"""

from __future__ import annotations

import copy
import dataclasses
import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

from .. import records, settings
from .base import (
    COOKIE_CLICKER_PATCH_FIELDS,
    GAME_DATA_PATCH_FIELDS,
    USER_PATCH_FIELDS,
    DuplicateUsernameError,
    Storage,
    check_grant,
    check_patch,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")

# collection name -> (file name, record type)
COLLECTIONS: dict[str, tuple[str, type]] = {
    "users": ("users.json", records.User),
    "chat_messages": ("chat_messages.json", records.ChatMessage),
    "broadcast_messages": ("messages.json", records.BroadcastMessage),
    "moderation_logs": ("moderation_logs.json", records.ModerationLogEntry),
    "user_strikes": ("user_strikes.json", records.UserStrike),
    "game_data": ("game_data.json", records.GameData),
    "cookie_clicker_data": ("cookie_clicker_data.json", records.CookieClickerData),
    "blocked_words": ("blocked_words.json", records.BlockedWord),
}

# Sorts records that never reached a high score after those that did
_NEVER = datetime.max.replace(tzinfo=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _record_from_dict(cls: type[R], raw: dict[str, Any]) -> R:
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name not in raw:
            continue
        value = raw[f.name]
        # Annotations are strings under ``from __future__ import annotations``
        if value is not None and "datetime" in str(f.type):
            value = datetime.fromisoformat(value)
        kwargs[f.name] = value
    return cls(**kwargs)


class MemStorage(Storage):
    """Dict-backed storage, optionally persisted to JSON files."""

    def __init__(self, data_dir: str | Path | None = None, strike_threshold: int | None = None) -> None:
        self._lock = threading.RLock()
        self._strike_threshold = strike_threshold or settings.STRIKE_THRESHOLD
        self._tables: dict[str, dict[int, Any]] = {name: {} for name in COLLECTIONS}
        self._next_ids: dict[str, int] = {name: 1 for name in COLLECTIONS}

        self._data_dir = Path(data_dir) if data_dir else None
        if self._data_dir is not None:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._load_all()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_all(self) -> None:
        assert self._data_dir is not None
        for name, (filename, cls) in COLLECTIONS.items():
            path = self._data_dir / filename
            if not path.exists():
                continue
            try:
                rows = json.loads(path.read_text())
            except (json.JSONDecodeError, OSError) as e:
                # Refuse to start rather than overwrite the file with nothing
                logger.error(f"Could not read {path}: {e}")
                raise RuntimeError(f"Corrupt data file: {path}") from e
            table = self._tables[name]
            for raw in rows:
                record = _record_from_dict(cls, raw)
                table[record.id] = record
            if table:
                self._next_ids[name] = max(table) + 1
            logger.info(f"Loaded {len(table)} {name} from {path}")

    def _persist(self, name: str) -> None:
        if self._data_dir is None:
            return
        filename, _ = COLLECTIONS[name]
        path = self._data_dir / filename
        rows = [dataclasses.asdict(r) for r in self._tables[name].values()]
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(rows, indent=2, default=_json_default))
        os.replace(tmp_path, path)

    def _insert(self, name: str, factory: Callable[[int], R]) -> R:
        record_id = self._next_ids[name]
        self._next_ids[name] += 1
        record = factory(record_id)
        self._tables[name][record_id] = record
        self._persist(name)
        return copy.deepcopy(record)

    def _find(self, name: str, predicate: Callable[[Any], bool]) -> Any | None:
        for record in self._tables[name].values():
            if predicate(record):
                return record
        return None

    def _delete(self, name: str, record_id: int) -> bool:
        with self._lock:
            if self._tables[name].pop(record_id, None) is None:
                return False
            self._persist(name)
            return True

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> records.User | None:
        with self._lock:
            return copy.deepcopy(self._tables["users"].get(user_id))

    def _user_by_username(self, username: str) -> records.User | None:
        wanted = username.lower()
        return self._find("users", lambda u: u.username.lower() == wanted)

    def get_user_by_username(self, username: str) -> records.User | None:
        with self._lock:
            return copy.deepcopy(self._user_by_username(username))

    def create_user(
        self,
        username: str,
        password_hash: str,
        full_name: str,
        role: str = "user",
        access_level: str = "basic",
    ) -> records.User:
        with self._lock:
            if self._user_by_username(username) is not None:
                raise DuplicateUsernameError(f"Username already exists: {username}")
            return self._insert(
                "users",
                lambda i: records.User(
                    id=i,
                    username=username,
                    password_hash=password_hash,
                    full_name=full_name,
                    role=role,
                    access_level=access_level,
                    created_at=_now(),
                ),
            )

    def update_user(self, user_id: int, patch: dict[str, Any]) -> records.User | None:
        check_patch(patch, USER_PATCH_FIELDS)
        with self._lock:
            user = self._tables["users"].get(user_id)
            if user is None:
                return None
            if "username" in patch:
                clash = self._user_by_username(patch["username"])
                if clash is not None and clash.id != user_id:
                    raise DuplicateUsernameError(f"Username already exists: {patch['username']}")
            for key, value in patch.items():
                setattr(user, key, value)
            self._persist("users")
            return copy.deepcopy(user)

    def delete_user(self, user_id: int) -> bool:
        return self._delete("users", user_id)

    def list_users(self) -> list[records.User]:
        with self._lock:
            return copy.deepcopy(sorted(self._tables["users"].values(), key=lambda u: u.id))

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def create_chat_message(self, user_id: int, content: str) -> records.ChatMessage:
        with self._lock:
            return self._insert(
                "chat_messages",
                lambda i: records.ChatMessage(id=i, user_id=user_id, content=content, timestamp=_now()),
            )

    def get_chat_message(self, message_id: int) -> records.ChatMessage | None:
        with self._lock:
            return copy.deepcopy(self._tables["chat_messages"].get(message_id))

    def soft_delete_chat_message(self, message_id: int) -> records.ChatMessage | None:
        with self._lock:
            message = self._tables["chat_messages"].get(message_id)
            if message is None:
                return None
            message.is_deleted = True
            self._persist("chat_messages")
            return copy.deepcopy(message)

    def list_chat_messages(self) -> list[records.ChatMessage]:
        with self._lock:
            messages = sorted(self._tables["chat_messages"].values(), key=lambda m: (m.timestamp, m.id))
            return copy.deepcopy(messages)

    # ------------------------------------------------------------------
    # Moderation log
    # ------------------------------------------------------------------

    def create_moderation_log(
        self,
        user_id: int,
        username: str,
        original_message: str,
        reason: str,
        moderation_type: str,
    ) -> records.ModerationLogEntry:
        with self._lock:
            return self._insert(
                "moderation_logs",
                lambda i: records.ModerationLogEntry(
                    id=i,
                    user_id=user_id,
                    username=username,
                    original_message=original_message,
                    reason=reason,
                    moderation_type=moderation_type,
                    moderated_at=_now(),
                ),
            )

    def list_moderation_logs(self) -> list[records.ModerationLogEntry]:
        with self._lock:
            logs = sorted(
                self._tables["moderation_logs"].values(),
                key=lambda e: (e.moderated_at, e.id),
                reverse=True,
            )
            return copy.deepcopy(logs)

    def delete_moderation_log(self, log_id: int) -> bool:
        return self._delete("moderation_logs", log_id)

    # ------------------------------------------------------------------
    # Strikes
    # ------------------------------------------------------------------

    def _strike_for(self, user_id: int) -> records.UserStrike | None:
        return self._find("user_strikes", lambda s: s.user_id == user_id)

    def get_user_strikes(self, user_id: int) -> records.UserStrike | None:
        with self._lock:
            return copy.deepcopy(self._strike_for(user_id))

    def list_user_strikes(self) -> list[records.UserStrike]:
        with self._lock:
            strikes = sorted(
                self._tables["user_strikes"].values(),
                key=lambda s: (-s.strikes_count, s.user_id),
            )
            return copy.deepcopy(strikes)

    def increment_user_strikes(self, user_id: int, username: str) -> records.UserStrike:
        with self._lock:
            strike = self._strike_for(user_id)
            if strike is None:
                return self._insert(
                    "user_strikes",
                    lambda i: records.UserStrike(
                        id=i,
                        user_id=user_id,
                        username=username,
                        strikes_count=1,
                        is_chat_restricted=1 >= self._strike_threshold,
                        last_strike_at=_now(),
                    ),
                )
            strike.strikes_count += 1
            strike.is_chat_restricted = strike.strikes_count >= self._strike_threshold
            strike.username = username
            strike.last_strike_at = _now()
            self._persist("user_strikes")
            return copy.deepcopy(strike)

    def reset_user_strikes(self, user_id: int) -> records.UserStrike | None:
        with self._lock:
            strike = self._strike_for(user_id)
            if strike is None:
                return None
            strike.strikes_count = 0
            strike.is_chat_restricted = False
            self._persist("user_strikes")
            return copy.deepcopy(strike)

    # ------------------------------------------------------------------
    # Blocked words
    # ------------------------------------------------------------------

    def list_blocked_words(self) -> list[records.BlockedWord]:
        with self._lock:
            return copy.deepcopy(sorted(self._tables["blocked_words"].values(), key=lambda w: w.id))

    def create_blocked_word(self, word: str, match_type: str, added_by: int | None) -> records.BlockedWord:
        with self._lock:
            return self._insert(
                "blocked_words",
                lambda i: records.BlockedWord(
                    id=i, word=word, match_type=match_type, added_by=added_by, created_at=_now()
                ),
            )

    def update_blocked_word(
        self, word_id: int, word: str | None = None, match_type: str | None = None
    ) -> records.BlockedWord | None:
        with self._lock:
            blocked = self._tables["blocked_words"].get(word_id)
            if blocked is None:
                return None
            if word is not None:
                blocked.word = word
            if match_type is not None:
                blocked.match_type = match_type
            self._persist("blocked_words")
            return copy.deepcopy(blocked)

    def delete_blocked_word(self, word_id: int) -> bool:
        return self._delete("blocked_words", word_id)

    # ------------------------------------------------------------------
    # Broadcast messages
    # ------------------------------------------------------------------

    def create_broadcast_message(
        self,
        title: str,
        message: str,
        created_by: int,
        priority: str = "normal",
        expires_at: datetime | None = None,
    ) -> records.BroadcastMessage:
        with self._lock:
            return self._insert(
                "broadcast_messages",
                lambda i: records.BroadcastMessage(
                    id=i,
                    title=title,
                    message=message,
                    created_by=created_by,
                    priority=priority,
                    created_at=_now(),
                    expires_at=expires_at,
                ),
            )

    def get_broadcast_message(self, message_id: int) -> records.BroadcastMessage | None:
        with self._lock:
            return copy.deepcopy(self._tables["broadcast_messages"].get(message_id))

    def list_broadcast_messages(self) -> list[records.BroadcastMessage]:
        with self._lock:
            messages = sorted(
                self._tables["broadcast_messages"].values(),
                key=lambda m: (m.created_at, m.id),
                reverse=True,
            )
            return copy.deepcopy(messages)

    def mark_broadcast_message_read(self, message_id: int, user_id: int) -> records.BroadcastMessage | None:
        with self._lock:
            message = self._tables["broadcast_messages"].get(message_id)
            if message is None:
                return None
            if user_id not in message.has_been_read:
                message.has_been_read.append(user_id)
                self._persist("broadcast_messages")
            return copy.deepcopy(message)

    def delete_broadcast_message(self, message_id: int) -> bool:
        return self._delete("broadcast_messages", message_id)

    # ------------------------------------------------------------------
    # Game data
    # ------------------------------------------------------------------

    def _game_data_for(self, user_id: int, game_type: str) -> records.GameData | None:
        return self._find("game_data", lambda g: g.user_id == user_id and g.game_type == game_type)

    def get_game_data(self, user_id: int, game_type: str) -> records.GameData | None:
        with self._lock:
            return copy.deepcopy(self._game_data_for(user_id, game_type))

    def save_game_data(
        self,
        user_id: int,
        game_type: str,
        data: dict[str, Any],
        high_score: float = 0,
    ) -> records.GameData:
        now = _now()
        with self._lock:
            existing = self._game_data_for(user_id, game_type)
            if existing is None:
                return self._insert(
                    "game_data",
                    lambda i: records.GameData(
                        id=i,
                        user_id=user_id,
                        game_type=game_type,
                        data=copy.deepcopy(data),
                        high_score=high_score,
                        high_score_at=now,
                        last_played=now,
                    ),
                )
            if existing.high_score != high_score:
                existing.high_score_at = now
            existing.data = copy.deepcopy(data)
            existing.high_score = high_score
            existing.last_played = now
            self._persist("game_data")
            return copy.deepcopy(existing)

    def update_game_data(self, game_data_id: int, patch: dict[str, Any]) -> records.GameData | None:
        check_patch(patch, GAME_DATA_PATCH_FIELDS)
        with self._lock:
            record = self._tables["game_data"].get(game_data_id)
            if record is None:
                return None
            for key, value in patch.items():
                setattr(record, key, copy.deepcopy(value))
            self._persist("game_data")
            return copy.deepcopy(record)

    def record_game_score(
        self, user_id: int, game_type: str, data: dict[str, Any], score: float
    ) -> records.GameData:
        now = _now()
        with self._lock:
            existing = self._game_data_for(user_id, game_type)
            if existing is None:
                return self.save_game_data(user_id, game_type, data, high_score=score)
            existing.data = copy.deepcopy(data)
            existing.last_played = now
            if score > existing.high_score:
                existing.high_score = score
                existing.high_score_at = now
            self._persist("game_data")
            return copy.deepcopy(existing)

    def high_scores(self, game_type: str, limit: int | None = None) -> list[records.GameData]:
        with self._lock:
            entries = sorted(
                (g for g in self._tables["game_data"].values() if g.game_type == game_type),
                key=lambda g: (-g.high_score, g.high_score_at or _NEVER, g.id),
            )
            if limit is not None:
                entries = entries[:limit]
            return copy.deepcopy(entries)

    # ------------------------------------------------------------------
    # Cookie clicker
    # ------------------------------------------------------------------

    def _cookie_data_for(self, user_id: int) -> records.CookieClickerData | None:
        return self._find("cookie_clicker_data", lambda c: c.user_id == user_id)

    def _ensure_cookie_data(self, user_id: int) -> records.CookieClickerData:
        existing = self._cookie_data_for(user_id)
        if existing is not None:
            return existing
        created = self._insert(
            "cookie_clicker_data",
            lambda i: records.CookieClickerData(id=i, user_id=user_id, last_updated=_now()),
        )
        return self._tables["cookie_clicker_data"][created.id]

    def get_cookie_clicker_data(self, user_id: int) -> records.CookieClickerData | None:
        with self._lock:
            return copy.deepcopy(self._cookie_data_for(user_id))

    def update_cookie_clicker_data(self, user_id: int, patch: dict[str, Any]) -> records.CookieClickerData:
        check_patch(patch, COOKIE_CLICKER_PATCH_FIELDS)
        with self._lock:
            record = self._ensure_cookie_data(user_id)
            for key, value in patch.items():
                setattr(record, key, value)
            record.last_updated = _now()
            self._persist("cookie_clicker_data")
            return copy.deepcopy(record)

    def grant_cookie_clicker(
        self, user_id: int, amount: float, resource: str = "cookies"
    ) -> records.CookieClickerData:
        amount = check_grant(amount, resource)
        with self._lock:
            record = self._ensure_cookie_data(user_id)
            setattr(record, resource, getattr(record, resource) + amount)
            record.last_updated = _now()
            self._persist("cookie_clicker_data")
            return copy.deepcopy(record)

    def cookie_clicker_leaderboard(self, limit: int | None = None) -> list[records.CookieClickerData]:
        with self._lock:
            entries = sorted(
                self._tables["cookie_clicker_data"].values(),
                key=lambda c: (-c.cookies, c.id),
            )
            if limit is not None:
                entries = entries[:limit]
            return copy.deepcopy(entries)
