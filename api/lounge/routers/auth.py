"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from .. import records, schemas
from ..auth import authenticate_user, create_access_token, get_current_user, hash_password, require_admin
from ..deps import get_storage
from ..storage.base import DuplicateUsernameError, Storage

router = APIRouter(prefix="/api", tags=["Auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=schemas.LoginResponse)
def login(
    payload: schemas.LoginRequest,
    storage: Storage = Depends(get_storage),
) -> schemas.LoginResponse:
    """
    Exchange username and password for a bearer token.
    """
    user = authenticate_user(storage, payload.username, payload.password)
    if user is None:
        logger.info(f"Failed login attempt for {payload.username!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    logger.info(f"User {user.id} logged in")
    return schemas.LoginResponse(
        access_token=create_access_token(user.id),
        user=schemas.UserPublic.model_validate(user),
    )


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(current_user: records.User = Depends(get_current_user)) -> dict:
    """
    Acknowledge a logout. Tokens are stateless; the client discards its copy.
    """
    logger.info(f"User {current_user.id} logged out")
    return {"message": "Logged out"}


@router.get("/user", response_model=schemas.UserPublic)
def get_me(current_user: records.User = Depends(get_current_user)) -> schemas.UserPublic:
    return schemas.UserPublic.model_validate(current_user)


@router.post("/register", response_model=schemas.UserPublic, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: schemas.UserCreate,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> schemas.UserPublic:
    """
    Create a user account. Only admins can register users.
    """
    try:
        user = storage.create_user(
            username=payload.username,
            password_hash=hash_password(payload.password),
            full_name=payload.full_name,
            role=payload.role,
            access_level=payload.access_level,
        )
    except DuplicateUsernameError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        )

    logger.info(f"Admin {admin.id} registered user {user.id} ({user.username})")
    return schemas.UserPublic.model_validate(user)
