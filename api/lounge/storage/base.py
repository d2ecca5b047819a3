"""Storage interface shared by the in-memory and database backends."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from .. import records

# Fields a caller may change through ``update_game_data``.
GAME_DATA_PATCH_FIELDS = frozenset({"data", "high_score", "high_score_at", "last_played"})

# Fields a caller may change through ``update_cookie_clicker_data``.
COOKIE_CLICKER_PATCH_FIELDS = frozenset(records.COOKIE_CLICKER_RESOURCES) | {"background"}

# Fields a caller may change through ``update_user``.
USER_PATCH_FIELDS = frozenset({"username", "password_hash", "full_name", "role", "access_level"})


class DuplicateUsernameError(ValueError):
    """Raised when a username is already taken (case-insensitive)."""


def check_patch(patch: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")


def check_grant(amount: float, resource: str) -> float | int:
    """Validate a grant and return the amount typed for the target counter."""
    if not math.isfinite(amount):
        raise ValueError("Grant amount must be a finite number")
    if resource not in records.COOKIE_CLICKER_RESOURCES:
        raise ValueError(f"Unknown cookie clicker resource: {resource}")
    if amount <= 0:
        raise ValueError("Grant amount must be positive")
    if resource == "cookies":
        return amount
    if amount != int(amount):
        raise ValueError(f"{resource} can only be granted in whole numbers")
    return int(amount)


class Storage(ABC):
    """
    Persistence for every entity the API serves.

    Lookups return ``None`` (or ``False`` for deletes) when the target does
    not exist; callers translate that into 404s. Counter updates
    (strikes, cookie grants, high scores) are atomic with respect to other
    writers of the same record.
    """

    # -- users ---------------------------------------------------------------

    @abstractmethod
    def get_user(self, user_id: int) -> records.User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> records.User | None:
        """Case-insensitive lookup."""

    @abstractmethod
    def create_user(
        self,
        username: str,
        password_hash: str,
        full_name: str,
        role: str = "user",
        access_level: str = "basic",
    ) -> records.User: ...

    @abstractmethod
    def update_user(self, user_id: int, patch: dict[str, Any]) -> records.User | None: ...

    @abstractmethod
    def delete_user(self, user_id: int) -> bool: ...

    @abstractmethod
    def list_users(self) -> list[records.User]: ...

    # -- chat ----------------------------------------------------------------

    @abstractmethod
    def create_chat_message(self, user_id: int, content: str) -> records.ChatMessage:
        """Persist a message. ``content`` must already be moderated."""

    @abstractmethod
    def get_chat_message(self, message_id: int) -> records.ChatMessage | None: ...

    @abstractmethod
    def soft_delete_chat_message(self, message_id: int) -> records.ChatMessage | None: ...

    @abstractmethod
    def list_chat_messages(self) -> list[records.ChatMessage]:
        """All messages, deleted ones included, oldest first."""

    # -- moderation log ------------------------------------------------------

    @abstractmethod
    def create_moderation_log(
        self,
        user_id: int,
        username: str,
        original_message: str,
        reason: str,
        moderation_type: str,
    ) -> records.ModerationLogEntry: ...

    @abstractmethod
    def list_moderation_logs(self) -> list[records.ModerationLogEntry]:
        """Newest first."""

    @abstractmethod
    def delete_moderation_log(self, log_id: int) -> bool: ...

    # -- strikes -------------------------------------------------------------

    @abstractmethod
    def get_user_strikes(self, user_id: int) -> records.UserStrike | None: ...

    @abstractmethod
    def list_user_strikes(self) -> list[records.UserStrike]: ...

    @abstractmethod
    def increment_user_strikes(self, user_id: int, username: str) -> records.UserStrike:
        """Add one strike, creating the record on first violation."""

    @abstractmethod
    def reset_user_strikes(self, user_id: int) -> records.UserStrike | None: ...

    def is_chat_restricted(self, user_id: int) -> bool:
        strike = self.get_user_strikes(user_id)
        return bool(strike and strike.is_chat_restricted)

    # -- blocked words -------------------------------------------------------

    @abstractmethod
    def list_blocked_words(self) -> list[records.BlockedWord]: ...

    @abstractmethod
    def create_blocked_word(
        self, word: str, match_type: str, added_by: int | None
    ) -> records.BlockedWord: ...

    @abstractmethod
    def update_blocked_word(
        self, word_id: int, word: str | None = None, match_type: str | None = None
    ) -> records.BlockedWord | None: ...

    @abstractmethod
    def delete_blocked_word(self, word_id: int) -> bool: ...

    # -- broadcast messages --------------------------------------------------

    @abstractmethod
    def create_broadcast_message(
        self,
        title: str,
        message: str,
        created_by: int,
        priority: str = "normal",
        expires_at: datetime | None = None,
    ) -> records.BroadcastMessage: ...

    @abstractmethod
    def get_broadcast_message(self, message_id: int) -> records.BroadcastMessage | None: ...

    @abstractmethod
    def list_broadcast_messages(self) -> list[records.BroadcastMessage]:
        """Newest first."""

    @abstractmethod
    def mark_broadcast_message_read(
        self, message_id: int, user_id: int
    ) -> records.BroadcastMessage | None:
        """Add ``user_id`` to the read set. Marking twice is a no-op."""

    def unread_broadcast_messages(self, user_id: int) -> list[records.BroadcastMessage]:
        return [m for m in self.list_broadcast_messages() if user_id not in m.has_been_read]

    @abstractmethod
    def delete_broadcast_message(self, message_id: int) -> bool: ...

    # -- game data -----------------------------------------------------------

    @abstractmethod
    def get_game_data(self, user_id: int, game_type: str) -> records.GameData | None: ...

    @abstractmethod
    def save_game_data(
        self,
        user_id: int,
        game_type: str,
        data: dict[str, Any],
        high_score: float = 0,
    ) -> records.GameData:
        """Insert or overwrite the record for ``(user_id, game_type)``."""

    @abstractmethod
    def update_game_data(self, game_data_id: int, patch: dict[str, Any]) -> records.GameData | None: ...

    @abstractmethod
    def record_game_score(
        self, user_id: int, game_type: str, data: dict[str, Any], score: float
    ) -> records.GameData:
        """
        Store the latest game state and keep the best score.

        ``data`` and ``last_played`` are always overwritten; ``high_score``
        only moves when ``score`` beats it.
        """

    @abstractmethod
    def high_scores(self, game_type: str, limit: int | None = None) -> list[records.GameData]:
        """Best first; ties go to whoever reached the score earlier."""

    # -- cookie clicker ------------------------------------------------------

    @abstractmethod
    def get_cookie_clicker_data(self, user_id: int) -> records.CookieClickerData | None: ...

    @abstractmethod
    def update_cookie_clicker_data(
        self, user_id: int, patch: dict[str, Any]
    ) -> records.CookieClickerData:
        """Overwrite the given fields, creating the record if needed."""

    @abstractmethod
    def grant_cookie_clicker(
        self, user_id: int, amount: float, resource: str = "cookies"
    ) -> records.CookieClickerData:
        """Add ``amount`` to ``resource`` without clobbering concurrent progress."""

    @abstractmethod
    def cookie_clicker_leaderboard(self, limit: int | None = None) -> list[records.CookieClickerData]: ...
