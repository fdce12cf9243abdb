"""
LifeMon Backend — Users Route Group (profile endpoints)
=========================================================

What:  Profile endpoints of the users route group, mounted at /api/users.
How:   Thin handlers: resolve the caller, delegate to ProfileService, wrap the
       result in the response envelope.

Endpoints:
    GET  /api/users/profile          own profile (or the base-user shell)
    PUT  /api/users/profile          update own profile (JSON body)
    POST /api/users/profile/avatar   upload avatar (multipart field `avatar`)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lifemon.database import get_db_session
from lifemon.dependencies import receive_avatar, require_caller_id
from lifemon.exceptions import ValidationError
from lifemon.schemas.common import ApiResponse, ErrorResponse
from lifemon.schemas.profile import AvatarData, ProfileData, ProfileUpdateRequest
from lifemon.services.avatar_storage import AvatarStorage, StoredAvatar, get_avatar_storage
from lifemon.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])

ERROR_RESPONSES = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


@router.get(
    "/profile",
    response_model=ApiResponse[ProfileData],
    response_model_exclude_unset=True,
    responses=ERROR_RESPONSES,
    summary="Get own profile",
)
async def get_profile(
    user_id: int = Depends(require_caller_id),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ProfileData]:
    profile = await profile_service.get_profile(db, user_id)
    return ApiResponse[ProfileData](success=True, data=profile)


@router.put(
    "/profile",
    response_model=ApiResponse[ProfileData],
    response_model_exclude_unset=True,
    responses=ERROR_RESPONSES,
    summary="Update own profile",
)
async def update_profile(
    payload: Optional[ProfileUpdateRequest] = Body(default=None),
    user_id: int = Depends(require_caller_id),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ProfileData]:
    """
    Update own profile.

    All body fields are optional; see ProfileUpdateRequest for how absent and
    blank values are written. The response carries the profile as re-read
    after the commit.
    """
    payload = payload or ProfileUpdateRequest()
    logger.info("Profile update requested by user %s", user_id)
    profile = await profile_service.update_profile(db, user_id, payload)
    return ApiResponse[ProfileData](
        success=True,
        message="Profile updated successfully",
        data=profile,
    )


@router.post(
    "/profile/avatar",
    response_model=ApiResponse[AvatarData],
    response_model_exclude_unset=True,
    responses=ERROR_RESPONSES,
    summary="Upload own avatar",
)
async def upload_avatar(
    stored: Optional[StoredAvatar] = Depends(receive_avatar),
    user_id: int = Depends(require_caller_id),
    storage: AvatarStorage = Depends(get_avatar_storage),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AvatarData]:
    """
    Upload own avatar.

    The file has already been validated and written by receive_avatar; this
    handler records its path on both tables. If that fails the file is removed.
    """
    if stored is None:
        raise ValidationError(message="No file uploaded", field="avatar")

    try:
        avatar = await profile_service.upload_avatar(db, user_id, stored.url)
    except Exception:
        await storage.cleanup(stored.path)
        raise

    return ApiResponse[AvatarData](
        success=True,
        message="Avatar uploaded successfully",
        data=avatar,
    )
