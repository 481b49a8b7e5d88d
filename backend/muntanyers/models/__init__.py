# Importing this package registers every table with Base.metadata
from muntanyers.models.user import User
from muntanyers.models.post import Comment, Like, Post
from muntanyers.models.follow import Follow, FollowStatus
from muntanyers.models.notification import Notification, NotificationType

__all__ = [
    "User",
    "Post",
    "Comment",
    "Like",
    "Follow",
    "FollowStatus",
    "Notification",
    "NotificationType",
]
