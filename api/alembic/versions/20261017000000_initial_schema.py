"""Initial lounge schema.

Revision ID: 20261017000000
Revises:
Create Date: 2026-10-17

Users, chat with moderation logs and strikes, admin blocked words,
broadcast messages with per-user read tracking, and game data.
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017000000"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    # users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("access_level", sa.String(length=20), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_username_lower", "users", [sa.text("lower(username)")], unique=True)

    # chat_messages
    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at("timestamp"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chat_messages_id", "chat_messages", ["id"])
    op.create_index("ix_chat_messages_user_id", "chat_messages", ["user_id"])
    op.create_index("ix_chat_messages_timestamp", "chat_messages", ["timestamp"])

    # moderation_logs
    op.create_table(
        "moderation_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("original_message", sa.Text(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("moderation_type", sa.String(length=50), nullable=False),
        _created_at("moderated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_moderation_logs_id", "moderation_logs", ["id"])
    op.create_index("ix_moderation_logs_user_id", "moderation_logs", ["user_id"])
    op.create_index("ix_moderation_logs_moderation_type", "moderation_logs", ["moderation_type"])
    op.create_index("ix_moderation_logs_moderated_at", "moderation_logs", ["moderated_at"])

    # user_strikes
    op.create_table(
        "user_strikes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("strikes_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_chat_restricted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_strike_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_strikes_id", "user_strikes", ["id"])
    op.create_index("ix_user_strikes_user_id", "user_strikes", ["user_id"], unique=True)
    op.create_index("ix_user_strikes_is_chat_restricted", "user_strikes", ["is_chat_restricted"])

    # blocked_words
    op.create_table(
        "blocked_words",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("word", sa.String(length=100), nullable=False),
        sa.Column("match_type", sa.String(length=20), nullable=False, server_default="exact"),
        sa.Column("added_by", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_blocked_words_id", "blocked_words", ["id"])

    # broadcast_messages
    op.create_table(
        "broadcast_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="normal"),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_broadcast_messages_id", "broadcast_messages", ["id"])
    op.create_index("ix_broadcast_messages_created_at", "broadcast_messages", ["created_at"])

    op.create_table(
        "broadcast_message_reads",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _created_at("read_at"),
        sa.ForeignKeyConstraint(["message_id"], ["broadcast_messages.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("message_id", "user_id", name="uq_broadcast_read_message_user"),
    )
    op.create_index("ix_broadcast_message_reads_message_id", "broadcast_message_reads", ["message_id"])
    op.create_index("ix_broadcast_message_reads_user_id", "broadcast_message_reads", ["user_id"])

    # game_data
    op.create_table(
        "game_data",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("game_type", sa.String(length=50), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("high_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("high_score_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_played", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "game_type", name="uq_game_data_user_game"),
    )
    op.create_index("ix_game_data_id", "game_data", ["id"])
    op.create_index("ix_game_data_user_id", "game_data", ["user_id"])
    op.create_index("ix_game_data_game_type", "game_data", ["game_type"])
    op.create_index("ix_game_data_leaderboard", "game_data", ["game_type", "high_score"])

    # cookie_clicker_data
    op.create_table(
        "cookie_clicker_data",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("cookies", sa.Float(), nullable=False, server_default="0"),
        sa.Column("click_power", sa.BigInteger(), nullable=False, server_default="1"),
        sa.Column("auto_clickers", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("grandmas", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("factories", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("background", sa.String(length=50), nullable=False, server_default="default"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cookie_clicker_data_id", "cookie_clicker_data", ["id"])
    op.create_index("ix_cookie_clicker_data_user_id", "cookie_clicker_data", ["user_id"], unique=True)
    op.create_index("ix_cookie_clicker_data_last_updated", "cookie_clicker_data", ["last_updated"])


def downgrade() -> None:
    op.drop_table("cookie_clicker_data")
    op.drop_table("game_data")
    op.drop_table("broadcast_message_reads")
    op.drop_table("broadcast_messages")
    op.drop_table("blocked_words")
    op.drop_table("user_strikes")
    op.drop_table("moderation_logs")
    op.drop_table("chat_messages")
    op.drop_table("users")
