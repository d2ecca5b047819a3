"""Moderation endpoints: strikes, violation logs and blocked words."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from .. import records, schemas
from ..auth import get_current_user, require_admin
from ..deps import get_storage
from ..storage.base import Storage

router = APIRouter(prefix="/api/moderation", tags=["Moderation"])
logger = logging.getLogger(__name__)


# ============================================================================
# STRIKES
# ============================================================================


@router.get("/strikes", response_model=list[schemas.UserStrikeOut])
def list_strikes(
    _: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> list[schemas.UserStrikeOut]:
    """
    Strike records for every user with at least one violation, most strikes first.
    """
    return [schemas.UserStrikeOut.model_validate(s) for s in storage.list_user_strikes()]


@router.get("/strikes/me", response_model=schemas.UserStrikeOut)
def my_strikes(
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.UserStrikeOut:
    strike = storage.get_user_strikes(current_user.id)
    if strike is None:
        return schemas.UserStrikeOut(user_id=current_user.id, username=current_user.username)
    return schemas.UserStrikeOut.model_validate(strike)


@router.post("/strikes/{user_id}/reset", response_model=schemas.UserStrikeOut)
def reset_strikes(
    user_id: int,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> schemas.UserStrikeOut:
    """
    Clear a user's strikes and lift any chat restriction.
    """
    strike = storage.reset_user_strikes(user_id)
    if strike is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No strikes recorded for user")
    logger.info(f"Admin {admin.id} reset strikes for user {user_id}")
    return schemas.UserStrikeOut.model_validate(strike)


# ============================================================================
# VIOLATION LOG
# ============================================================================


@router.get("/logs", response_model=list[schemas.ModerationLogOut])
def list_logs(
    _: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> list[schemas.ModerationLogOut]:
    return [schemas.ModerationLogOut.model_validate(e) for e in storage.list_moderation_logs()]


@router.delete("/logs/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_log(
    id: int,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> None:
    if not storage.delete_moderation_log(id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Log entry not found")
    logger.info(f"Admin {admin.id} deleted moderation log {id}")


# ============================================================================
# BLOCKED WORDS
# ============================================================================


@router.get("/blocked-words", response_model=list[schemas.BlockedWordOut])
def list_blocked_words(
    _: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> list[schemas.BlockedWordOut]:
    return [schemas.BlockedWordOut.model_validate(w) for w in storage.list_blocked_words()]


@router.post("/blocked-words", response_model=schemas.BlockedWordOut, status_code=status.HTTP_201_CREATED)
def add_blocked_word(
    payload: schemas.BlockedWordCreate,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> schemas.BlockedWordOut:
    word = payload.word.strip()
    if not word:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Word cannot be blank")
    blocked = storage.create_blocked_word(word, payload.match_type, admin.id)
    logger.info(f"Admin {admin.id} added blocked word {blocked.id} ({payload.match_type})")
    return schemas.BlockedWordOut.model_validate(blocked)


@router.patch("/blocked-words/{id}", response_model=schemas.BlockedWordOut)
def update_blocked_word(
    id: int,
    payload: schemas.BlockedWordUpdate,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> schemas.BlockedWordOut:
    word = payload.word.strip() if payload.word is not None else None
    if word == "":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Word cannot be blank")
    blocked = storage.update_blocked_word(id, word=word, match_type=payload.match_type)
    if blocked is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blocked word not found")
    logger.info(f"Admin {admin.id} updated blocked word {id}")
    return schemas.BlockedWordOut.model_validate(blocked)


@router.delete("/blocked-words/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_word(
    id: int,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> None:
    if not storage.delete_blocked_word(id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blocked word not found")
    logger.info(f"Admin {admin.id} deleted blocked word {id}")
