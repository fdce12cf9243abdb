"""
LifeMon Backend — Shared FastAPI Dependencies
===============================================

What:  Caller resolution and the avatar upload step used by the users routes.
"""

import logging
from typing import Optional

from fastapi import Depends, File, Request, UploadFile

from lifemon.exceptions import ValidationError
from lifemon.services.avatar_storage import AvatarStorage, StoredAvatar, get_avatar_storage

logger = logging.getLogger(__name__)


def get_caller_id(request: Request) -> Optional[int]:
    """The user id attached to the request by CallerIdentityMiddleware, if any."""
    return getattr(request.state, "user_id", None)


def require_caller_id(caller_id: Optional[int] = Depends(get_caller_id)) -> int:
    """Resolved caller id, or a 400 when the request carries none."""
    if caller_id is None:
        raise ValidationError(message="User ID not found", field="user_id")
    return caller_id


async def receive_avatar(
    avatar: Optional[UploadFile] = File(None, description="Avatar image (image/*, max 5MB)"),
    caller_id: int = Depends(require_caller_id),
    storage: AvatarStorage = Depends(get_avatar_storage),
) -> Optional[StoredAvatar]:
    """
    Upload step of the avatar route: validates and stores the `avatar` field.

    Runs before the handler body, so wrong types and oversize payloads are
    rejected (400) before the handler or the database is involved.

    Returns:
        StoredAvatar, or None when the request carried no file.
    """
    if avatar is None or not avatar.filename:
        return None
    try:
        return await storage.store(caller_id, avatar)
    finally:
        await avatar.close()
