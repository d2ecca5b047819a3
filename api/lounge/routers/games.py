"""Game state and leaderboard endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from .. import records, schemas, settings
from ..auth import get_current_user, require_admin
from ..deps import get_storage
from ..services.leaderboard import COOKIE_CLICKER, invalidate_leaderboards, leaderboard
from ..storage.base import Storage

router = APIRouter(prefix="/api", tags=["Games"])
logger = logging.getLogger(__name__)

# Game types are path segments chosen by clients
GAME_TYPE_PATTERN = r"^[a-z0-9][a-z0-9_-]{0,49}$"


def _leaderboard_response(
    storage: Storage, game_type: str, limit: int | None
) -> list[schemas.LeaderboardEntry]:
    return [schemas.LeaderboardEntry.model_validate(e) for e in leaderboard(storage, game_type, limit)]


@router.get("/leaderboard/{game_type}", response_model=list[schemas.LeaderboardEntry])
def get_leaderboard(
    game_type: str,
    limit: int = Query(10, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    storage: Storage = Depends(get_storage),
) -> list[schemas.LeaderboardEntry]:
    """
    Ranked high scores for a game, best first.
    """
    return _leaderboard_response(storage, game_type, limit)


# ============================================================================
# COOKIE CLICKER
# ============================================================================
# Declared before the generic /games/{game_type} routes so they take precedence.


@router.get("/games/cookie-clicker/leaderboard", response_model=list[schemas.LeaderboardEntry])
def cookie_clicker_leaderboard(
    limit: int = Query(10, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    storage: Storage = Depends(get_storage),
) -> list[schemas.LeaderboardEntry]:
    return _leaderboard_response(storage, COOKIE_CLICKER, limit)


@router.get("/games/cookie-clicker", response_model=schemas.CookieClickerOut)
def get_cookie_clicker(
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.CookieClickerOut:
    data = storage.get_cookie_clicker_data(current_user.id)
    if data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved game")
    return schemas.CookieClickerOut.model_validate(data)


@router.post("/games/cookie-clicker/save", response_model=schemas.CookieClickerOut)
def save_cookie_clicker(
    payload: schemas.CookieClickerSave,
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.CookieClickerOut:
    data = storage.update_cookie_clicker_data(current_user.id, payload.model_dump())
    invalidate_leaderboards(COOKIE_CLICKER)
    return schemas.CookieClickerOut.model_validate(data)


@router.post("/games/cookie-clicker/gift", response_model=schemas.CookieClickerOut)
def gift_cookie_clicker(
    payload: schemas.CookieClickerGift,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> schemas.CookieClickerOut:
    """
    Add resources to a player's cookie clicker game.

    The amount is added to whatever the player has at that moment, so a
    save racing with the gift cannot erase it.
    """
    user = storage.get_user_by_username(payload.username)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    try:
        data = storage.grant_cookie_clicker(user.id, payload.amount, payload.gift_type)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    invalidate_leaderboards(COOKIE_CLICKER)
    logger.info(f"Admin {admin.id} gifted {payload.amount} {payload.gift_type} to user {user.id}")
    return schemas.CookieClickerOut.model_validate(data)


# ============================================================================
# GENERIC GAMES
# ============================================================================


@router.get("/games/{game_type}/leaderboard", response_model=list[schemas.LeaderboardEntry])
def game_leaderboard(
    game_type: str,
    limit: int = Query(10, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    storage: Storage = Depends(get_storage),
) -> list[schemas.LeaderboardEntry]:
    return _leaderboard_response(storage, game_type, limit)


@router.get("/games/{game_type}", response_model=schemas.GameDataOut)
def get_game(
    game_type: str,
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.GameDataOut:
    data = storage.get_game_data(current_user.id, game_type)
    if data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved game")
    return schemas.GameDataOut.model_validate(data)


@router.post("/games/{game_type}/save", response_model=schemas.GameDataOut)
def save_game(
    payload: schemas.GameSaveRequest,
    game_type: str = Path(..., pattern=GAME_TYPE_PATTERN),
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.GameDataOut:
    """
    Store the latest state for a game; the high score only ever goes up.
    """
    data = storage.record_game_score(current_user.id, game_type, payload.data, payload.score)
    invalidate_leaderboards(game_type)
    return schemas.GameDataOut.model_validate(data)
