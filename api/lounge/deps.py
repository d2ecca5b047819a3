from __future__ import annotations

import logging
import threading

from . import settings
from .state import AppState, get_app_state
from .storage.base import Storage

logger = logging.getLogger(__name__)

_storage: Storage | None = None
_storage_lock = threading.Lock()


def build_storage() -> Storage:
    """Create the backend selected by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "database":
        from .storage.database import DatabaseStorage

        logger.info("Using database storage")
        return DatabaseStorage()
    if settings.STORAGE_BACKEND == "memory":
        from .storage.memory import MemStorage

        if settings.DATA_DIR:
            logger.info(f"Using in-memory storage persisted to {settings.DATA_DIR}")
        else:
            logger.info("Using in-memory storage (not persisted)")
        return MemStorage(data_dir=settings.DATA_DIR)
    raise RuntimeError(
        f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}; expected 'memory' or 'database'"
    )


def configure_storage(storage: Storage | None) -> None:
    """Replace the process-wide storage (None resets to lazy construction)."""
    global _storage
    with _storage_lock:
        _storage = storage


def get_storage() -> Storage:
    global _storage
    with _storage_lock:
        if _storage is None:
            _storage = build_storage()
        return _storage


def get_state() -> AppState:
    return get_app_state()
