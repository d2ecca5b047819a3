"""Chat room endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from .. import records, schemas
from ..auth import get_current_user, require_ownership
from ..deps import get_storage
from ..services.moderation import ModerationEngine
from ..storage.base import Storage

router = APIRouter(prefix="/api/chat", tags=["Chat"])
logger = logging.getLogger(__name__)


def _enrich(message: records.ChatMessage, author: records.User | None) -> schemas.ChatMessageOut:
    return schemas.ChatMessageOut(
        id=message.id,
        user_id=message.user_id,
        content=message.content,
        timestamp=message.timestamp,
        is_deleted=message.is_deleted,
        user=schemas.UserPublic.model_validate(author) if author else None,
    )


@router.get("", response_model=list[schemas.ChatMessageOut])
def list_messages(
    _: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> list[schemas.ChatMessageOut]:
    """
    All chat messages, oldest first.

    Deleted messages are included with ``is_deleted`` set; clients decide how
    to render them. Messages whose author was deleted carry ``user: null``.
    """
    users = {u.id: u for u in storage.list_users()}
    return [_enrich(m, users.get(m.user_id)) for m in storage.list_chat_messages()]


@router.post("", response_model=schemas.ChatMessageOut, status_code=status.HTTP_201_CREATED)
def post_message(
    payload: schemas.ChatMessageCreate,
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.ChatMessageOut:
    """
    Post a chat message.

    The text is moderated first; violations are masked rather than rejected,
    so the message is still posted in redacted form.
    """
    if storage.is_chat_restricted(current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You have been restricted from chat due to repeated violations",
        )

    result = ModerationEngine(storage).moderate(payload.content, current_user.id, current_user.username)
    message = storage.create_chat_message(current_user.id, result.moderated_message)
    return _enrich(message, current_user)


@router.delete("/{id}", response_model=schemas.ChatMessageOut)
def delete_message(
    id: int,
    current_user: records.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> schemas.ChatMessageOut:
    """
    Soft delete a message. Authors can delete their own; admins any.
    """
    message = storage.get_chat_message(id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")

    require_ownership(message.user_id, current_user)

    deleted = storage.soft_delete_chat_message(id)
    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")

    logger.info(f"User {current_user.id} deleted chat message {id}")
    return _enrich(deleted, storage.get_user(deleted.user_id))
