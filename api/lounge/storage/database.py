"""SQLAlchemy-backed storage.

Every public method runs in its own session and transaction. Counter
updates are single ``UPDATE ... SET col = col + :n`` statements so that
concurrent writers never lose increments; first-time records are inserted
and, if another writer won the race to the unique key, the update is
retried against the row they created.
"""

from __future__ import annotations

import dataclasses
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from .. import models, records, settings
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


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_record(cls: type[R], row: Any) -> R:
    return cls(**{f.name: getattr(row, f.name) for f in dataclasses.fields(cls)})


def _to_broadcast(row: models.BroadcastMessage) -> records.BroadcastMessage:
    return records.BroadcastMessage(
        id=row.id,
        title=row.title,
        message=row.message,
        created_by=row.created_by,
        priority=row.priority,
        created_at=row.created_at,
        expires_at=row.expires_at,
        has_been_read=[r.user_id for r in row.reads],
    )


def _to_game_data(row: models.GameData) -> records.GameData:
    return records.GameData(
        id=row.id,
        user_id=row.user_id,
        game_type=row.game_type,
        data=dict(row.data or {}),
        high_score=row.high_score,
        high_score_at=row.high_score_at,
        last_played=row.last_played,
    )


class DatabaseStorage(Storage):
    """Storage on top of the ORM models in ``lounge.models``."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        strike_threshold: int | None = None,
    ) -> None:
        if session_factory is None:
            from ..db import get_session_factory

            session_factory = get_session_factory()
        self._session_factory = session_factory
        self._strike_threshold = strike_threshold or settings.STRIKE_THRESHOLD

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _upsert(
        self,
        do_update: Callable[[Session], int],
        do_insert: Callable[[Session], None],
    ) -> None:
        """Run ``do_update``; insert when no row matched, retrying on a lost race."""
        with self._session() as session:
            if do_update(session):
                return
        try:
            with self._session() as session:
                do_insert(session)
            return
        except IntegrityError:
            logger.debug("Concurrent insert detected, retrying update")
        with self._session() as session:
            if not do_update(session):
                raise RuntimeError("Upsert failed: row vanished after conflicting insert")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> records.User | None:
        with self._session() as session:
            row = session.get(models.User, user_id)
            return _to_record(records.User, row) if row else None

    def get_user_by_username(self, username: str) -> records.User | None:
        with self._session() as session:
            row = session.execute(
                select(models.User).where(func.lower(models.User.username) == username.lower())
            ).scalar_one_or_none()
            return _to_record(records.User, row) if row else None

    def create_user(
        self,
        username: str,
        password_hash: str,
        full_name: str,
        role: str = "user",
        access_level: str = "basic",
    ) -> records.User:
        row = models.User(
            username=username,
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            access_level=access_level,
            created_at=_now(),
        )
        try:
            with self._session() as session:
                session.add(row)
                session.flush()
                return _to_record(records.User, row)
        except IntegrityError as e:
            raise DuplicateUsernameError(f"Username already exists: {username}") from e

    def update_user(self, user_id: int, patch: dict[str, Any]) -> records.User | None:
        check_patch(patch, USER_PATCH_FIELDS)
        try:
            with self._session() as session:
                row = session.get(models.User, user_id)
                if row is None:
                    return None
                for key, value in patch.items():
                    setattr(row, key, value)
                session.flush()
                return _to_record(records.User, row)
        except IntegrityError as e:
            raise DuplicateUsernameError(f"Username already exists: {patch.get('username')}") from e

    def delete_user(self, user_id: int) -> bool:
        with self._session() as session:
            result = session.execute(delete(models.User).where(models.User.id == user_id))
            return result.rowcount > 0

    def list_users(self) -> list[records.User]:
        with self._session() as session:
            rows = session.execute(select(models.User).order_by(models.User.id)).scalars()
            return [_to_record(records.User, r) for r in rows]

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def create_chat_message(self, user_id: int, content: str) -> records.ChatMessage:
        with self._session() as session:
            row = models.ChatMessage(user_id=user_id, content=content, timestamp=_now())
            session.add(row)
            session.flush()
            return _to_record(records.ChatMessage, row)

    def get_chat_message(self, message_id: int) -> records.ChatMessage | None:
        with self._session() as session:
            row = session.get(models.ChatMessage, message_id)
            return _to_record(records.ChatMessage, row) if row else None

    def soft_delete_chat_message(self, message_id: int) -> records.ChatMessage | None:
        with self._session() as session:
            row = session.get(models.ChatMessage, message_id)
            if row is None:
                return None
            row.is_deleted = True
            session.flush()
            return _to_record(records.ChatMessage, row)

    def list_chat_messages(self) -> list[records.ChatMessage]:
        with self._session() as session:
            rows = session.execute(
                select(models.ChatMessage).order_by(models.ChatMessage.timestamp, models.ChatMessage.id)
            ).scalars()
            return [_to_record(records.ChatMessage, r) for r in rows]

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
        with self._session() as session:
            row = models.ModerationLog(
                user_id=user_id,
                username=username,
                original_message=original_message,
                reason=reason,
                moderation_type=moderation_type,
                moderated_at=_now(),
            )
            session.add(row)
            session.flush()
            return _to_record(records.ModerationLogEntry, row)

    def list_moderation_logs(self) -> list[records.ModerationLogEntry]:
        with self._session() as session:
            rows = session.execute(
                select(models.ModerationLog).order_by(
                    models.ModerationLog.moderated_at.desc(), models.ModerationLog.id.desc()
                )
            ).scalars()
            return [_to_record(records.ModerationLogEntry, r) for r in rows]

    def delete_moderation_log(self, log_id: int) -> bool:
        with self._session() as session:
            result = session.execute(delete(models.ModerationLog).where(models.ModerationLog.id == log_id))
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Strikes
    # ------------------------------------------------------------------

    def get_user_strikes(self, user_id: int) -> records.UserStrike | None:
        with self._session() as session:
            row = session.execute(
                select(models.UserStrike).where(models.UserStrike.user_id == user_id)
            ).scalar_one_or_none()
            return _to_record(records.UserStrike, row) if row else None

    def list_user_strikes(self) -> list[records.UserStrike]:
        with self._session() as session:
            rows = session.execute(
                select(models.UserStrike).order_by(
                    models.UserStrike.strikes_count.desc(), models.UserStrike.user_id
                )
            ).scalars()
            return [_to_record(records.UserStrike, r) for r in rows]

    def increment_user_strikes(self, user_id: int, username: str) -> records.UserStrike:
        threshold = self._strike_threshold
        now = _now()

        def do_update(session: Session) -> int:
            next_count = models.UserStrike.strikes_count + 1
            stmt = (
                update(models.UserStrike)
                .where(models.UserStrike.user_id == user_id)
                .values(
                    strikes_count=next_count,
                    is_chat_restricted=case((next_count >= threshold, True), else_=False),
                    last_strike_at=now,
                    username=username,
                )
                .execution_options(synchronize_session=False)
            )
            return session.execute(stmt).rowcount

        def do_insert(session: Session) -> None:
            session.add(
                models.UserStrike(
                    user_id=user_id,
                    username=username,
                    strikes_count=1,
                    is_chat_restricted=1 >= threshold,
                    last_strike_at=now,
                )
            )
            session.flush()

        self._upsert(do_update, do_insert)
        strike = self.get_user_strikes(user_id)
        assert strike is not None
        return strike

    def reset_user_strikes(self, user_id: int) -> records.UserStrike | None:
        with self._session() as session:
            result = session.execute(
                update(models.UserStrike)
                .where(models.UserStrike.user_id == user_id)
                .values(strikes_count=0, is_chat_restricted=False)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                return None
        return self.get_user_strikes(user_id)

    # ------------------------------------------------------------------
    # Blocked words
    # ------------------------------------------------------------------

    def list_blocked_words(self) -> list[records.BlockedWord]:
        with self._session() as session:
            rows = session.execute(select(models.BlockedWord).order_by(models.BlockedWord.id)).scalars()
            return [_to_record(records.BlockedWord, r) for r in rows]

    def create_blocked_word(self, word: str, match_type: str, added_by: int | None) -> records.BlockedWord:
        with self._session() as session:
            row = models.BlockedWord(word=word, match_type=match_type, added_by=added_by, created_at=_now())
            session.add(row)
            session.flush()
            return _to_record(records.BlockedWord, row)

    def update_blocked_word(
        self, word_id: int, word: str | None = None, match_type: str | None = None
    ) -> records.BlockedWord | None:
        with self._session() as session:
            row = session.get(models.BlockedWord, word_id)
            if row is None:
                return None
            if word is not None:
                row.word = word
            if match_type is not None:
                row.match_type = match_type
            session.flush()
            return _to_record(records.BlockedWord, row)

    def delete_blocked_word(self, word_id: int) -> bool:
        with self._session() as session:
            result = session.execute(delete(models.BlockedWord).where(models.BlockedWord.id == word_id))
            return result.rowcount > 0

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
        with self._session() as session:
            row = models.BroadcastMessage(
                title=title,
                message=message,
                created_by=created_by,
                priority=priority,
                expires_at=expires_at,
                created_at=_now(),
            )
            session.add(row)
            session.flush()
            return _to_broadcast(row)

    def get_broadcast_message(self, message_id: int) -> records.BroadcastMessage | None:
        with self._session() as session:
            row = session.get(
                models.BroadcastMessage, message_id, options=[selectinload(models.BroadcastMessage.reads)]
            )
            return _to_broadcast(row) if row else None

    def list_broadcast_messages(self) -> list[records.BroadcastMessage]:
        with self._session() as session:
            rows = session.execute(
                select(models.BroadcastMessage)
                .options(selectinload(models.BroadcastMessage.reads))
                .order_by(models.BroadcastMessage.created_at.desc(), models.BroadcastMessage.id.desc())
            ).scalars()
            return [_to_broadcast(r) for r in rows]

    def mark_broadcast_message_read(self, message_id: int, user_id: int) -> records.BroadcastMessage | None:
        with self._session() as session:
            if session.get(models.BroadcastMessage, message_id) is None:
                return None
        try:
            with self._session() as session:
                session.add(models.BroadcastMessageRead(message_id=message_id, user_id=user_id, read_at=_now()))
        except IntegrityError:
            # Already in the read set
            pass
        return self.get_broadcast_message(message_id)

    def delete_broadcast_message(self, message_id: int) -> bool:
        with self._session() as session:
            row = session.get(models.BroadcastMessage, message_id)
            if row is None:
                return False
            session.delete(row)
            return True

    # ------------------------------------------------------------------
    # Game data
    # ------------------------------------------------------------------

    def _game_data_row(self, session: Session, user_id: int, game_type: str) -> models.GameData | None:
        return session.execute(
            select(models.GameData).where(
                models.GameData.user_id == user_id, models.GameData.game_type == game_type
            )
        ).scalar_one_or_none()

    def get_game_data(self, user_id: int, game_type: str) -> records.GameData | None:
        with self._session() as session:
            row = self._game_data_row(session, user_id, game_type)
            return _to_game_data(row) if row else None

    def _write_game_data(
        self,
        user_id: int,
        game_type: str,
        data: dict[str, Any],
        score: float,
        keep_best: bool,
    ) -> records.GameData:
        now = _now()
        col = models.GameData

        def do_update(session: Session) -> int:
            if keep_best:
                beats = col.high_score < score
                values = {
                    col.data: data,
                    col.last_played: now,
                    col.high_score: case((beats, score), else_=col.high_score),
                    col.high_score_at: case((beats, now), else_=col.high_score_at),
                }
            else:
                values = {
                    col.data: data,
                    col.last_played: now,
                    col.high_score: score,
                    col.high_score_at: case((col.high_score != score, now), else_=col.high_score_at),
                }
            stmt = (
                update(col)
                .where(col.user_id == user_id, col.game_type == game_type)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            return session.execute(stmt).rowcount

        def do_insert(session: Session) -> None:
            session.add(
                col(
                    user_id=user_id,
                    game_type=game_type,
                    data=data,
                    high_score=score,
                    high_score_at=now,
                    last_played=now,
                )
            )
            session.flush()

        self._upsert(do_update, do_insert)
        saved = self.get_game_data(user_id, game_type)
        assert saved is not None
        return saved

    def save_game_data(
        self,
        user_id: int,
        game_type: str,
        data: dict[str, Any],
        high_score: float = 0,
    ) -> records.GameData:
        return self._write_game_data(user_id, game_type, data, high_score, keep_best=False)

    def update_game_data(self, game_data_id: int, patch: dict[str, Any]) -> records.GameData | None:
        check_patch(patch, GAME_DATA_PATCH_FIELDS)
        with self._session() as session:
            row = session.get(models.GameData, game_data_id)
            if row is None:
                return None
            for key, value in patch.items():
                setattr(row, key, value)
            session.flush()
            return _to_game_data(row)

    def record_game_score(
        self, user_id: int, game_type: str, data: dict[str, Any], score: float
    ) -> records.GameData:
        return self._write_game_data(user_id, game_type, data, score, keep_best=True)

    def high_scores(self, game_type: str, limit: int | None = None) -> list[records.GameData]:
        col = models.GameData
        stmt = (
            select(col)
            .where(col.game_type == game_type)
            .order_by(
                col.high_score.desc(),
                col.high_score_at.is_(None),
                col.high_score_at,
                col.id,
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [_to_game_data(r) for r in session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Cookie clicker
    # ------------------------------------------------------------------

    def get_cookie_clicker_data(self, user_id: int) -> records.CookieClickerData | None:
        with self._session() as session:
            row = session.execute(
                select(models.CookieClickerData).where(models.CookieClickerData.user_id == user_id)
            ).scalar_one_or_none()
            return _to_record(records.CookieClickerData, row) if row else None

    def _write_cookie_clicker(
        self,
        user_id: int,
        values: dict[str, Any],
        initial: dict[str, Any],
    ) -> records.CookieClickerData:
        col = models.CookieClickerData
        now = _now()

        def do_update(session: Session) -> int:
            stmt = (
                update(col)
                .where(col.user_id == user_id)
                .values({**values, col.last_updated: now})
                .execution_options(synchronize_session=False)
            )
            return session.execute(stmt).rowcount

        def do_insert(session: Session) -> None:
            session.add(col(user_id=user_id, last_updated=now, **initial))
            session.flush()

        self._upsert(do_update, do_insert)
        saved = self.get_cookie_clicker_data(user_id)
        assert saved is not None
        return saved

    def update_cookie_clicker_data(self, user_id: int, patch: dict[str, Any]) -> records.CookieClickerData:
        check_patch(patch, COOKIE_CLICKER_PATCH_FIELDS)
        col = models.CookieClickerData
        return self._write_cookie_clicker(
            user_id,
            values={getattr(col, key): value for key, value in patch.items()},
            initial=dict(patch),
        )

    def grant_cookie_clicker(
        self, user_id: int, amount: float, resource: str = "cookies"
    ) -> records.CookieClickerData:
        amount = check_grant(amount, resource)
        target = getattr(models.CookieClickerData, resource)
        # New records start from the defaults plus the grant
        start = getattr(records.CookieClickerData(id=0, user_id=user_id), resource)
        return self._write_cookie_clicker(
            user_id,
            values={target: target + amount},
            initial={resource: start + amount},
        )

    def cookie_clicker_leaderboard(self, limit: int | None = None) -> list[records.CookieClickerData]:
        col = models.CookieClickerData
        stmt = select(col).order_by(col.cookies.desc(), col.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [_to_record(records.CookieClickerData, r) for r in session.execute(stmt).scalars()]
