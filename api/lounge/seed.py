from __future__ import annotations

import logging

from . import settings
from .auth import hash_password
from .storage.base import Storage

logger = logging.getLogger(__name__)


def ensure_seed_data(storage: Storage) -> None:
    """
    Create the initial admin account when no admin exists yet.

    Credentials come from ADMIN_USERNAME / ADMIN_PASSWORD. Without a password
    nothing is created and a warning is logged, since admins are the only
    ones who can register new users.
    """
    if any(u.is_admin for u in storage.list_users()):
        logger.info("ensure_seed_data: Admin account present, nothing to seed.")
        return

    if not settings.ADMIN_PASSWORD:
        logger.warning("ensure_seed_data: No admin account and ADMIN_PASSWORD is unset; skipping.")
        return

    if storage.get_user_by_username(settings.ADMIN_USERNAME) is not None:
        logger.warning(
            f"ensure_seed_data: User {settings.ADMIN_USERNAME!r} exists but is not an admin; skipping."
        )
        return

    storage.create_user(
        username=settings.ADMIN_USERNAME,
        password_hash=hash_password(settings.ADMIN_PASSWORD),
        full_name="Administrator",
        role="admin",
        access_level="full",
    )
    logger.info(f"ensure_seed_data: Created admin account {settings.ADMIN_USERNAME!r}.")
