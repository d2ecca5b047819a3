from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base


# ============================================================================
# CORE ENTITIES
# ============================================================================


class User(Base):
    """User account with credentials and role information."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # "user" | "admin"
    access_level = Column(String(20), nullable=False, default="basic")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        # Usernames are unique regardless of case
        Index("ix_users_username_lower", func.lower(username), unique=True),
    )


# ============================================================================
# CHAT & MODERATION
# ============================================================================


class ChatMessage(Base):
    """Chat room message. Deletion only flips ``is_deleted``."""

    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    # No foreign key: messages outlive their authors
    user_id = Column(Integer, nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)

    timestamp = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )


class ModerationLog(Base):
    """One row per moderation violation, holding the unredacted original."""

    __tablename__ = "moderation_logs"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    username = Column(String(50), nullable=False)  # denormalized
    original_message = Column(Text, nullable=False)
    reason = Column(String(255), nullable=False)
    moderation_type = Column(String(50), nullable=False, index=True)

    moderated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )


class UserStrike(Base):
    """Per-user moderation strike counter."""

    __tablename__ = "user_strikes"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    username = Column(String(50), nullable=False)
    strikes_count = Column(Integer, nullable=False, default=0)
    is_chat_restricted = Column(Boolean, nullable=False, default=False, index=True)
    last_strike_at = Column(DateTime(timezone=True), nullable=True)


class BlockedWord(Base):
    """Admin-managed term checked after the built-in moderation rules."""

    __tablename__ = "blocked_words"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    word = Column(String(100), nullable=False)
    match_type = Column(String(20), nullable=False, default="exact")
    added_by = Column(Integer, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ============================================================================
# BROADCAST MESSAGES
# ============================================================================


class BroadcastMessage(Base):
    """Admin announcement shown to every user until they mark it read."""

    __tablename__ = "broadcast_messages"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="normal")
    created_by = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )

    # Relationships
    reads = relationship(
        "BroadcastMessageRead",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="BroadcastMessageRead.id",
    )


class BroadcastMessageRead(Base):
    """Membership of a user in a broadcast message's read set."""

    __tablename__ = "broadcast_message_reads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(
        Integer, ForeignKey("broadcast_messages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, nullable=False, index=True)

    read_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_broadcast_read_message_user"),
    )

    # Relationships
    message = relationship("BroadcastMessage", back_populates="reads")


# ============================================================================
# GAMES
# ============================================================================


class GameData(Base):
    """Saved state and best score for one user in one game."""

    __tablename__ = "game_data"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    # No foreign key: leaderboards skip scores whose user is gone
    user_id = Column(Integer, nullable=False, index=True)
    game_type = Column(String(50), nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
    high_score = Column(Float, nullable=False, default=0)
    high_score_at = Column(DateTime(timezone=True), nullable=True)
    last_played = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "game_type", name="uq_game_data_user_game"),
        Index("ix_game_data_leaderboard", "game_type", "high_score"),
    )


class CookieClickerData(Base):
    """Cookie clicker resources. Admin gifts add to these counters in place."""

    __tablename__ = "cookie_clicker_data"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    cookies = Column(Float, nullable=False, default=0)
    click_power = Column(BigInteger, nullable=False, default=1)
    auto_clickers = Column(BigInteger, nullable=False, default=0)
    grandmas = Column(BigInteger, nullable=False, default=0)
    factories = Column(BigInteger, nullable=False, default=0)
    background = Column(String(50), nullable=False, default="default")
    last_updated = Column(DateTime(timezone=True), nullable=True, index=True)
