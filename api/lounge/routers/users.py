"""User administration endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from .. import records, schemas
from ..auth import hash_password, require_admin
from ..deps import get_storage
from ..services.leaderboard import invalidate_leaderboards
from ..storage.base import DuplicateUsernameError, Storage

router = APIRouter(prefix="/api/users", tags=["Users"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[schemas.UserAdminView])
def list_users(
    _: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> list[schemas.UserAdminView]:
    return [schemas.UserAdminView.model_validate(u) for u in storage.list_users()]


@router.put("/{id}", response_model=schemas.UserAdminView)
def update_user(
    id: int,
    payload: schemas.UserUpdate,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> schemas.UserAdminView:
    """
    Update a user. A new password is hashed before it is stored.
    """
    patch = payload.model_dump(exclude_unset=True, exclude_none=True)
    password = patch.pop("password", None)
    if password:
        patch["password_hash"] = hash_password(password)

    try:
        user = storage.update_user(id, patch)
    except DuplicateUsernameError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        )
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    # Usernames appear in cached leaderboards
    invalidate_leaderboards()
    logger.info(f"Admin {admin.id} updated user {id} ({', '.join(sorted(patch))})")
    return schemas.UserAdminView.model_validate(user)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    id: int,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> None:
    """
    Delete a user. Admin accounts cannot be deleted.

    Chat history and scores are kept; leaderboards skip scores whose user
    is gone.
    """
    user = storage.get_user(id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot delete admin user")

    if not storage.delete_user(id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    invalidate_leaderboards()
    logger.info(f"Admin {admin.id} deleted user {id} ({user.username})")
