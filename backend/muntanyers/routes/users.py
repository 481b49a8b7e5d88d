"""
muntanyers Backend: Account and Profile Routes
==============================================

What:  The caller's own profile, password, avatar and account deletion;
       user search; other accounts' profiles and posts.
Who:   Called by the profile, search and settings pages of the web client.

Every route requires a session. Search is declared before
/users/{username} so "search" is never taken for a username.
"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from muntanyers.config import settings
from muntanyers.database import get_db_session
from muntanyers.schemas.accounts import (
    AccountDeleteRequest,
    AvatarResponse,
    OwnProfileResponse,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    PublicProfileResponse,
    UserSearchItem,
)
from muntanyers.schemas.common import ErrorResponse, SuccessResponse
from muntanyers.schemas.posts import PostItem
from muntanyers.security import SESSION_USERNAME, logout_session, require_user
from muntanyers.services.account_service import account_service
from muntanyers.services.file_service import file_service
from muntanyers.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


# ══════════════════════════════════════════════════════════════════════════
# The caller's own account
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/user/profile",
    response_model=OwnProfileResponse,
    responses={401: {"model": ErrorResponse}},
    summary="The caller's profile with counters",
)
async def get_own_profile(
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> OwnProfileResponse:
    return await account_service.own_profile(db, user_id)


@router.put(
    "/user/profile",
    response_model=SuccessResponse,
    responses={
        400: {"description": "Username missing", "model": ErrorResponse},
        409: {"description": "Username taken", "model": ErrorResponse},
    },
    summary="Update username, bio and privacy",
)
async def update_own_profile(
    body: ProfileUpdateRequest,
    request: Request,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    user = await account_service.update_profile(
        db, user_id, body.username, body.bio, body.private
    )
    request.session[SESSION_USERNAME] = user.username
    return SuccessResponse()


@router.put(
    "/user/password",
    response_model=SuccessResponse,
    responses={400: {"description": "Wrong current password", "model": ErrorResponse}},
    summary="Change the caller's password",
)
async def change_password(
    body: PasswordChangeRequest,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await account_service.change_password(db, user_id, body.current_password, body.new_password)
    return SuccessResponse()


@router.delete(
    "/user",
    response_model=SuccessResponse,
    responses={400: {"description": "Wrong password", "model": ErrorResponse}},
    summary="Delete the caller's account and everything it owns",
)
async def delete_account(
    body: AccountDeleteRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    avatar_url = await account_service.delete_account(db, user_id, body.password)
    logout_session(request)
    background_tasks.add_task(file_service.remove_avatar, avatar_url)
    return SuccessResponse()


@router.post(
    "/user/avatar",
    response_model=AvatarResponse,
    responses={400: {"description": "Not an image, empty or too large", "model": ErrorResponse}},
    summary="Upload a new profile picture",
)
async def upload_avatar(
    background_tasks: BackgroundTasks,
    avatar: UploadFile = File(..., description="Image file (png, jpg, gif, webp), max 5MB"),
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> AvatarResponse:
    try:
        # One byte past the limit is enough to reject an oversized upload
        content = await avatar.read(settings.max_avatar_size + 1)
    finally:
        await avatar.close()

    avatar_url, previous = await account_service.set_avatar(
        db,
        user_id,
        filename=avatar.filename or "",
        content_type=avatar.content_type,
        content=content,
    )
    if previous and previous != avatar_url:
        background_tasks.add_task(file_service.remove_avatar, previous)
    return AvatarResponse(avatar_url=avatar_url)


# ══════════════════════════════════════════════════════════════════════════
# Other accounts
# ══════════════════════════════════════════════════════════════════════════


@router.get("/users/search", response_model=List[UserSearchItem], include_in_schema=False)
@router.get("/users/search/", response_model=List[UserSearchItem], summary="List accounts")
async def list_users(
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserSearchItem]:
    return await account_service.search_users(db, user_id)


@router.get(
    "/users/search/{query}",
    response_model=List[UserSearchItem],
    summary="Search accounts by username",
)
async def search_users(
    query: str,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserSearchItem]:
    return await account_service.search_users(db, user_id, query)


@router.get(
    "/users/{username}",
    response_model=PublicProfileResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Another account's profile as seen by the caller",
)
async def get_profile(
    username: str,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> PublicProfileResponse:
    return await account_service.profile_by_username(db, user_id, username)


@router.get(
    "/user/{owner_id}/posts",
    response_model=List[PostItem],
    responses={
        403: {"description": "Private account not followed", "model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Posts of one account, newest first",
)
async def get_user_posts(
    owner_id: int,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostItem]:
    return await post_service.user_posts(db, user_id, owner_id)
