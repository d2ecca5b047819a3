"""System endpoints (health, heartbeat, screen lock)."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from .. import records, schemas
from ..auth import get_current_user, require_admin
from ..deps import get_state
from ..state import AppState

router = APIRouter(prefix="", tags=["System"])
logger = logging.getLogger(__name__)

# Global startup time for uptime calculation
_STARTUP_TIME = time.time()


@router.get("/health", response_model=schemas.HealthResponse)
def get_health() -> schemas.HealthResponse:
    """
    Liveness check.
    """
    uptime_s = time.time() - _STARTUP_TIME
    return schemas.HealthResponse(status="ok", uptime_s=uptime_s)


@router.get("/api/heartbeat", response_model=schemas.HeartbeatResponse)
def heartbeat() -> schemas.HeartbeatResponse:
    """
    Polled by clients to notice when the server goes away or restarts.

    A changed ``start_time`` means the process restarted.
    """
    now = time.time()
    return schemas.HeartbeatResponse(
        status="ok",
        uptime=now - _STARTUP_TIME,
        start_time=datetime.fromtimestamp(_STARTUP_TIME, tz=timezone.utc),
        current_time=datetime.fromtimestamp(now, tz=timezone.utc),
    )


@router.get("/api/settings/lock", response_model=schemas.ScreenLockOut)
def get_screen_lock(
    _: records.User = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> schemas.ScreenLockOut:
    return schemas.ScreenLockOut.model_validate(state.screen_lock)


@router.post("/api/settings/lock", response_model=schemas.ScreenLockOut)
def set_screen_lock(
    payload: schemas.ScreenLockUpdate,
    admin: records.User = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> schemas.ScreenLockOut:
    """
    Lock or unlock every client's screen.
    """
    if payload.locked:
        lock = state.lock(payload.reason)
    else:
        lock = state.unlock_for_all()
    logger.info(f"Screen lock set to {lock.is_locked} by admin {admin.id}")
    return schemas.ScreenLockOut.model_validate(lock)
