"""Broadcast message endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import records, schemas
from ..auth import get_current_user, require_admin
from ..deps import get_storage
from ..storage.base import Storage

router = APIRouter(prefix="/api/messages", tags=["Messages"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[schemas.BroadcastMessageOut])
def list_messages(
    unread: bool = Query(False),
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> list[schemas.BroadcastMessageOut]:
    """
    Broadcast messages, newest first. ``?unread=true`` limits the list to
    messages the current user has not marked read.
    """
    if unread:
        messages = storage.unread_broadcast_messages(current_user.id)
    else:
        messages = storage.list_broadcast_messages()
    return [schemas.BroadcastMessageOut.model_validate(m) for m in messages]


@router.post("", response_model=schemas.BroadcastMessageOut, status_code=status.HTTP_201_CREATED)
def create_message(
    payload: schemas.BroadcastMessageCreate,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> schemas.BroadcastMessageOut:
    message = storage.create_broadcast_message(
        title=payload.title,
        message=payload.message,
        created_by=admin.id,
        priority=payload.priority,
        expires_at=payload.expires_at,
    )
    logger.info(f"Admin {admin.id} broadcast message {message.id} ({payload.priority})")
    return schemas.BroadcastMessageOut.model_validate(message)


@router.post("/{id}/read", response_model=schemas.BroadcastMessageOut)
def mark_read(
    id: int,
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.BroadcastMessageOut:
    message = storage.mark_broadcast_message_read(id, current_user.id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return schemas.BroadcastMessageOut.model_validate(message)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    id: int,
    admin: records.User = Depends(require_admin),
    storage: Storage = Depends(get_storage),
) -> None:
    if not storage.delete_broadcast_message(id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    logger.info(f"Admin {admin.id} deleted broadcast message {id}")
