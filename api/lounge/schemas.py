from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from . import settings

Role = Literal["user", "admin"]
AccessLevel = Literal["basic", "limited", "full"]
Priority = Literal["low", "normal", "high", "urgent"]
MatchType = Literal["exact", "contains", "starts_with", "ends_with"]
CookieResource = Literal["cookies", "click_power", "auto_clickers", "grandmas", "factories"]


# ============================================================================
# SYSTEM
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


class HeartbeatResponse(BaseModel):
    """Liveness ping polled by clients to detect the server going away."""

    status: Literal["ok"] = "ok"
    uptime: float
    start_time: datetime
    current_time: datetime


class ScreenLockOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_locked: bool
    reason: str | None = None
    locked_at: datetime | None = None


class ScreenLockUpdate(BaseModel):
    locked: bool
    reason: str | None = Field(None, max_length=500)


# ============================================================================
# USERS & AUTH
# ============================================================================


class UserPublic(BaseModel):
    """Public user profile. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str
    role: Role
    access_level: AccessLevel


class UserAdminView(UserPublic):
    created_at: datetime | None = None


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    user: UserPublic


class UserCreate(BaseModel):
    username: str = Field(..., min_length=2, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=4, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=100)
    role: Role = "user"
    access_level: AccessLevel = "basic"


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=2, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str | None = Field(None, min_length=4, max_length=128)
    full_name: str | None = Field(None, min_length=1, max_length=100)
    role: Role | None = None
    access_level: AccessLevel | None = None


# ============================================================================
# CHAT & MODERATION
# ============================================================================


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=settings.CHAT_MESSAGE_MAX_LENGTH)


class ChatMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    content: str
    timestamp: datetime
    is_deleted: bool
    user: UserPublic | None = None


class ModerationLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    username: str
    original_message: str
    reason: str
    moderation_type: str
    moderated_at: datetime


class UserStrikeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    user_id: int
    username: str
    strikes_count: int = 0
    is_chat_restricted: bool = False
    last_strike_at: datetime | None = None


class BlockedWordCreate(BaseModel):
    word: str = Field(..., min_length=1, max_length=100)
    match_type: MatchType = "exact"


class BlockedWordUpdate(BaseModel):
    word: str | None = Field(None, min_length=1, max_length=100)
    match_type: MatchType | None = None


class BlockedWordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    word: str
    match_type: MatchType
    added_by: int | None = None
    created_at: datetime | None = None


# ============================================================================
# BROADCAST MESSAGES
# ============================================================================


class BroadcastMessageCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    priority: Priority = "normal"
    expires_at: datetime | None = None


class BroadcastMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    message: str
    priority: str
    created_by: int
    created_at: datetime | None = None
    expires_at: datetime | None = None
    has_been_read: list[int] = Field(default_factory=list)


# ============================================================================
# GAMES
# ============================================================================


class GameSaveRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)
    # Older clients send the score as highScore
    score: float = Field(
        0, ge=0, allow_inf_nan=False, validation_alias=AliasChoices("score", "high_score", "highScore")
    )


class GameDataOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    game_type: str
    data: dict[str, Any]
    high_score: float
    high_score_at: datetime | None = None
    last_played: datetime | None = None


class LeaderboardEntry(BaseModel):
    rank: int
    id: int
    user_id: int
    username: str
    full_name: str
    score: float
    game_type: str
    last_played: datetime | None = None
    # word-scramble
    word_count: int | None = None
    accuracy: float | None = None
    # cookie-clicker
    cookies: float | None = None
    click_power: int | None = None
    auto_clickers: int | None = None
    grandmas: int | None = None
    factories: int | None = None
    user: UserPublic | None = None


class CookieClickerSave(BaseModel):
    cookies: float = Field(..., ge=0, allow_inf_nan=False)
    click_power: int = Field(1, ge=1)
    auto_clickers: int = Field(0, ge=0)
    grandmas: int = Field(0, ge=0)
    factories: int = Field(0, ge=0)
    background: str = Field("default", max_length=50)


class CookieClickerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    cookies: float
    click_power: int
    auto_clickers: int
    grandmas: int
    factories: int
    background: str
    last_updated: datetime | None = None


class CookieClickerGift(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    gift_type: CookieResource = "cookies"
    amount: float = Field(..., allow_inf_nan=False)
