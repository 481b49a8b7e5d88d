"""
muntanyers Backend: Notification Service (Fan-out and Feed)
===========================================================

What:  Derives notifications from social actions and serves the recipient's
       notification feed.
Who:   RelationshipService and PostService emit through it; the
       notifications routes read through it.

Derivation rules:
    ┌────────────────────────────┬───────────┬──────────┬─────────────────┬─────────┐
    │ Trigger                    │ Recipient │ From     │ Type            │ Post    │
    ├────────────────────────────┼───────────┼──────────┼─────────────────┼─────────┤
    │ follow → pending           │ followee  │ follower │ follow_request  │ -       │
    │ resolve → accept           │ follower  │ followee │ follow_accepted │ -       │
    │ new like by U on V's post  │ V         │ U        │ like            │ post id │
    │ comment by U on V's post   │ V         │ U        │ comment         │ post id │
    └────────────────────────────┴───────────┴──────────┴─────────────────┴─────────┘

    Actions on one's own post never notify. Nothing is ever retracted.

Emission only adds rows to the caller's session; they are committed together
with the action that caused them.
"""

import logging
from typing import List, Optional

from sqlalchemy import false, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from muntanyers.config import settings
from muntanyers.exceptions import DatabaseError
from muntanyers.models.notification import Notification, NotificationType
from muntanyers.models.post import Post
from muntanyers.models.user import User
from muntanyers.schemas.social import NotificationItem

logger = logging.getLogger(__name__)


class NotificationService:
    """Append-only notification sink plus the recipient-facing queries."""

    async def emit(
        self,
        db: AsyncSession,
        recipient_id: int,
        from_user_id: int,
        notification_type: NotificationType,
        post_id: Optional[int] = None,
    ) -> Notification:
        notification = Notification(
            user_id=recipient_id,
            from_user_id=from_user_id,
            type=notification_type.value,
            post_id=post_id,
        )
        db.add(notification)
        await db.flush()
        logger.info(
            "Notification %s: %s -> %s (post=%s)",
            notification_type.value,
            from_user_id,
            recipient_id,
            post_id,
        )
        return notification

    async def notify_follow_request(
        self, db: AsyncSession, follower_id: int, followee_id: int
    ) -> Notification:
        return await self.emit(db, followee_id, follower_id, NotificationType.FOLLOW_REQUEST)

    async def notify_follow_accepted(
        self, db: AsyncSession, followee_id: int, follower_id: int
    ) -> Notification:
        return await self.emit(db, follower_id, followee_id, NotificationType.FOLLOW_ACCEPTED)

    async def notify_post_interaction(
        self,
        db: AsyncSession,
        actor_id: int,
        post: Post,
        notification_type: NotificationType,
    ) -> Optional[Notification]:
        """
        Notify a post's owner about a like or comment.

        Returns None without writing anything when the actor owns the post.
        """
        if post.user_id == actor_id:
            return None
        return await self.emit(db, post.user_id, actor_id, notification_type, post_id=post.id)

    async def list_notifications(
        self,
        db: AsyncSession,
        account_id: int,
        limit: Optional[int] = None,
    ) -> List[NotificationItem]:
        """
        Return the account's most recent notifications.

        Ordering is created_at strictly descending; rows sharing a timestamp
        keep insertion order (id ascending). Originator and post are outer
        joined so rows survive the deletion of either.
        """
        limit = limit or settings.notifications_limit
        from_user = aliased(User)

        try:
            result = await db.execute(
                select(
                    Notification,
                    from_user.username,
                    from_user.avatar_url,
                    Post.content,
                )
                .outerjoin(from_user, Notification.from_user_id == from_user.id)
                .outerjoin(Post, Notification.post_id == Post.id)
                .where(Notification.user_id == account_id)
                .order_by(Notification.created_at.desc(), Notification.id.asc())
                .limit(limit)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notifications for %s: %s", account_id, str(e))
            raise DatabaseError(
                message="Could not retrieve notifications. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [
            NotificationItem(
                id=notification.id,
                type=notification.type,
                from_user_id=notification.from_user_id,
                from_username=from_username,
                from_avatar_url=from_avatar_url,
                post_id=notification.post_id,
                post_content=post_content,
                read=notification.is_read,
                created_at=notification.created_at,
            )
            for notification, from_username, from_avatar_url, post_content in rows
        ]

    async def mark_all_read(self, db: AsyncSession, account_id: int) -> None:
        """
        Flip every unread notification of the account to read.

        Idempotent: a repeat call matches no rows and still succeeds. Read
        rows are never flipped back.
        """
        await db.execute(
            update(Notification)
            .where(Notification.user_id == account_id, Notification.is_read == false())
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        logger.debug("Marked notifications read for %s", account_id)


notification_service = NotificationService()
