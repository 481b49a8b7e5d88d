"""
muntanyers Backend: Post, Like and Comment Routes
=================================================

What:  Create and delete posts, the feed, likes and comments.

Likes are idempotent: POST /like twice leaves a single like, and the
response always carries the recomputed counter.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from muntanyers.database import get_db_session
from muntanyers.schemas.common import ErrorResponse, SuccessResponse
from muntanyers.schemas.posts import (
    CommentCreatedResponse,
    CommentCreateRequest,
    CommentItem,
    FeedItem,
    LikeResponse,
    PostCreatedResponse,
    PostCreateRequest,
)
from muntanyers.security import require_user
from muntanyers.services.post_service import post_service

router = APIRouter(prefix="/api", tags=["Posts"])


@router.post(
    "/posts",
    response_model=PostCreatedResponse,
    status_code=201,
    responses={400: {"description": "Empty post", "model": ErrorResponse}},
    summary="Publish a post",
)
async def create_post(
    body: PostCreateRequest,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostCreatedResponse:
    post = await post_service.create_post(
        db,
        user_id,
        content=body.content,
        image_url=body.image_url,
        video_url=body.video_url,
        post_type=body.type,
    )
    return PostCreatedResponse(post_id=post.id)


@router.get(
    "/feed",
    response_model=List[FeedItem],
    summary="Newest posts visible to the caller",
)
async def get_feed(
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[FeedItem]:
    return await post_service.feed(db, user_id)


@router.delete(
    "/posts/{post_id}",
    response_model=SuccessResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete one of the caller's posts",
)
async def delete_post(
    post_id: int,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await post_service.delete_post(db, user_id, post_id)
    return SuccessResponse()


@router.post(
    "/posts/{post_id}/like",
    response_model=LikeResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Like a post",
)
async def like_post(
    post_id: int,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await post_service.like(db, user_id, post_id)


@router.delete(
    "/posts/{post_id}/like",
    response_model=LikeResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Remove the caller's like",
)
async def unlike_post(
    post_id: int,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await post_service.unlike(db, user_id, post_id)


@router.get(
    "/posts/{post_id}/comments",
    response_model=List[CommentItem],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Comments on a post, oldest first",
)
async def list_comments(
    post_id: int,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[CommentItem]:
    return await post_service.list_comments(db, user_id, post_id)


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentCreatedResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Comment on a post",
)
async def add_comment(
    post_id: int,
    body: CommentCreateRequest,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentCreatedResponse:
    comment = await post_service.add_comment(db, user_id, post_id, body.content)
    return CommentCreatedResponse(comment_id=comment.id)


@router.delete(
    "/comments/{comment_id}",
    response_model=SuccessResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete one of the caller's comments",
)
async def delete_comment(
    comment_id: int,
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await post_service.delete_comment(db, user_id, comment_id)
    return SuccessResponse()
