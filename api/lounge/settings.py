"""Centralized environment-driven settings.

Keep this module lightweight: no app imports, to avoid circular deps.
Values are read once at import time, after ``.env`` has been loaded.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# "memory" (optionally file-backed via DATA_DIR) or "database"
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory").strip().lower()

# Directory for the JSON-file fallback. Unset means purely in-memory.
DATA_DIR: str | None = os.getenv("DATA_DIR") or None

# Number of moderation strikes after which a user can no longer chat.
STRIKE_THRESHOLD: int = _int_env("STRIKE_THRESHOLD", 5)

# Seconds a computed leaderboard stays in Redis.
LEADERBOARD_CACHE_TTL: int = _int_env("LEADERBOARD_CACHE_TTL", 5)

# Upper bound for ?limit= on leaderboard endpoints.
LEADERBOARD_MAX_LIMIT: int = _int_env("LEADERBOARD_MAX_LIMIT", 100)

# Maximum length of a single chat message.
CHAT_MESSAGE_MAX_LENGTH: int = _int_env("CHAT_MESSAGE_MAX_LENGTH", 500)

# Credentials for the admin account created at startup when no admin exists.
ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD: str | None = os.getenv("ADMIN_PASSWORD") or None
