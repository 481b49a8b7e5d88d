"""
muntanyers Backend: Follow and Notification Routes
==================================================

What:  Follow requests, their resolution by the followee, and the caller's
       notification feed.

The followee is always the session identity when resolving, so an account
can only ever accept or reject requests addressed to itself.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from muntanyers.database import get_db_session
from muntanyers.schemas.common import ErrorResponse, SuccessResponse
from muntanyers.schemas.social import FollowResponse, NotificationItem, ResolveFollowResponse
from muntanyers.security import require_user
from muntanyers.services.notification_service import notification_service
from muntanyers.services.relationship_service import relationship_service

router = APIRouter(prefix="/api", tags=["Social"])


@router.post(
    "/users/{target_id}/follow",
    response_model=FollowResponse,
    responses={
        400: {"description": "Self-follow", "model": ErrorResponse},
        404: {"description": "Unknown account", "model": ErrorResponse},
    },
    summary="Follow an account (pending when the account is private)",
)
async def follow_user(
    target_id: int,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> FollowResponse:
    status = await relationship_service.request_follow(db, user_id, target_id)
    return FollowResponse(status=status)


@router.post(
    "/followers/{follower_id}/{action}",
    response_model=ResolveFollowResponse,
    responses={
        400: {"description": "Unknown action", "model": ErrorResponse},
        404: {"description": "No such request", "model": ErrorResponse},
        409: {"description": "Request is not pending", "model": ErrorResponse},
    },
    summary="Accept or reject a follow request addressed to the caller",
)
async def resolve_follow_request(
    follower_id: int,
    action: str,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> ResolveFollowResponse:
    status = await relationship_service.resolve_follow_request(db, user_id, follower_id, action)
    return ResolveFollowResponse(status=status)


@router.get(
    "/notifications",
    response_model=List[NotificationItem],
    summary="The caller's most recent notifications, newest first",
)
async def list_notifications(
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[NotificationItem]:
    return await notification_service.list_notifications(db, user_id)


@router.put(
    "/notifications/read",
    response_model=SuccessResponse,
    summary="Mark every notification of the caller as read",
)
async def mark_notifications_read(
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await notification_service.mark_all_read(db, user_id)
    return SuccessResponse()
