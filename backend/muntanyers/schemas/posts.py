"""
muntanyers Backend: Post, Like and Comment Schemas
==================================================
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PostCreateRequest(BaseModel):
    content: str = Field(default="")
    image_url: Optional[str] = Field(default=None, max_length=500)
    video_url: Optional[str] = Field(default=None, max_length=500)
    type: str = Field(default="text", max_length=20)


class PostCreatedResponse(BaseModel):
    success: bool = True
    post_id: int


class PostItem(BaseModel):
    """
    What:  A post with its author's display data.
    Who:   Returned by GET /api/user/{id}/posts and, with counters for the
           caller, by GET /api/feed (FeedItem).
    """
    id: int
    user_id: int
    username: str
    avatar_url: str
    content: str
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    type: str
    likes_count: int
    created_at: datetime


class FeedItem(PostItem):
    comments_count: int = 0
    user_has_liked: bool = False


class LikeResponse(BaseModel):
    success: bool = True
    liked: bool = Field(description="Whether the caller likes the post after the call")
    likes_count: int = Field(description="Like counter after the call")


class CommentCreateRequest(BaseModel):
    content: str = Field(default="")


class CommentCreatedResponse(BaseModel):
    success: bool = True
    comment_id: int


class CommentItem(BaseModel):
    id: int
    post_id: int
    user_id: int
    username: str
    content: str
    created_at: datetime
