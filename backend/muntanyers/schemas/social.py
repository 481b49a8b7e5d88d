"""
muntanyers Backend: Follow and Notification Schemas
===================================================
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from muntanyers.models.follow import FollowStatus
from muntanyers.models.notification import NotificationType


class FollowResponse(BaseModel):
    """
    Result of POST /api/users/{id}/follow.

    status == "pending":  the target is private and must approve
    status == "accepted": the caller now follows the target
    """
    success: bool = True
    status: FollowStatus


class ResolveFollowResponse(BaseModel):
    success: bool = True
    status: FollowStatus


class NotificationItem(BaseModel):
    """
    What:  One row of the caller's notification feed.

    from_user_id / from_username are null when the originating account has
    since been deleted. post_id / post_content are null for follow events
    and for posts that no longer exist.
    """
    id: int
    type: NotificationType
    from_user_id: Optional[int] = None
    from_username: Optional[str] = None
    from_avatar_url: Optional[str] = None
    post_id: Optional[int] = None
    post_content: Optional[str] = None
    read: bool = Field(description="Flipped to true by PUT /api/notifications/read")
    created_at: datetime
