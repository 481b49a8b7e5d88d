"""
muntanyers Backend: Post Service (Content Store)
================================================

What:  Posts, the feed, likes and comments, plus the notifications that
       likes and comments fan out.
Who:   Called by the posts routes; AccountService reuses the like-counter
       recomputation during account deletion.

Like workflow (one transaction, committed by get_db_session):
    ┌──────────────┐    ┌──────────────────┐    ┌───────────────────┐
    │ INSERT like  │───▶│ recompute        │───▶│ notify owner      │
    │ ON CONFLICT  │    │ posts.likes_count│    │ (new like, not    │
    │ DO NOTHING   │    │ = COUNT(likes)   │    │  own post)        │
    └──────────────┘    └──────────────────┘    └───────────────────┘

The counter is always recomputed from the Like set, so it cannot drift from
COUNT(likes WHERE post_id = X) whatever order concurrent requests commit in.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from muntanyers.config import settings
from muntanyers.database import insert_ignoring_conflicts
from muntanyers.exceptions import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from muntanyers.models.notification import Notification, NotificationType
from muntanyers.models.post import Comment, Like, Post
from muntanyers.models.user import User
from muntanyers.schemas.posts import CommentItem, FeedItem, LikeResponse, PostItem
from muntanyers.services.notification_service import notification_service
from muntanyers.services.relationship_service import relationship_service

logger = logging.getLogger(__name__)

POST_TYPES = {"text", "image", "video"}


class PostService:
    """Business logic for posts, likes and comments."""

    async def get_post(self, db: AsyncSession, post_id: int) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def get_visible_post(self, db: AsyncSession, viewer_id: int, post_id: int) -> Post:
        """
        Load a post the viewer is allowed to interact with.

        Raises:
            NotFoundError:  no such post
            ForbiddenError: the author is private and not followed by the viewer
        """
        post = await self.get_post(db, post_id)
        author = await db.get(User, post.user_id)
        if not await relationship_service.can_view(db, viewer_id, author):
            raise ForbiddenError(
                message="This account is private. Follow it to see its posts.",
                context={"post_id": post_id},
            )
        return post

    # ── Posts ─────────────────────────────────────────────────────────────

    async def create_post(
        self,
        db: AsyncSession,
        author_id: int,
        content: str,
        image_url: Optional[str] = None,
        video_url: Optional[str] = None,
        post_type: str = "text",
    ) -> Post:
        content = (content or "").strip()
        if not content and not image_url and not video_url:
            raise ValidationError(
                message="A post needs some text, an image or a video",
                field="content",
            )
        if post_type not in POST_TYPES:
            raise ValidationError(
                message=f"Unknown post type '{post_type}'",
                field="type",
                context={"allowed": sorted(POST_TYPES)},
            )

        post = Post(
            user_id=author_id,
            content=content,
            image_url=image_url or None,
            video_url=video_url or None,
            type=post_type,
        )
        db.add(post)
        await db.flush()
        logger.info("Post %s created by %s", post.id, author_id)
        return post

    async def delete_post(self, db: AsyncSession, actor_id: int, post_id: int) -> None:
        """
        Owner-only deletion. Likes and comments go with the post; notifications
        that referenced it keep existing without the reference.
        """
        post = await self.get_post(db, post_id)
        if post.user_id != actor_id:
            raise ForbiddenError(
                message="You can only delete your own posts",
                context={"post_id": post_id},
            )
        await self.delete_posts(db, [post_id])
        logger.info("Post %s deleted by %s", post_id, actor_id)

    async def delete_posts(self, db: AsyncSession, post_ids: Iterable[int]) -> None:
        post_ids = list(post_ids)
        if not post_ids:
            return
        await db.execute(
            update(Notification)
            .where(Notification.post_id.in_(post_ids))
            .values(post_id=None)
        )
        await db.execute(delete(Like).where(Like.post_id.in_(post_ids)))
        await db.execute(delete(Comment).where(Comment.post_id.in_(post_ids)))
        await db.execute(delete(Post).where(Post.id.in_(post_ids)))

    async def feed(self, db: AsyncSession, viewer_id: int, limit: Optional[int] = None) -> List[FeedItem]:
        """
        Newest posts the viewer is allowed to see (public authors, own posts,
        and private authors the viewer follows with an accepted edge).
        """
        limit = limit or settings.feed_limit
        comments_count = (
            select(func.count(Comment.id))
            .where(Comment.post_id == Post.id)
            .correlate(Post)
            .scalar_subquery()
        )
        user_has_liked = (
            select(Like.id)
            .where(Like.post_id == Post.id, Like.user_id == viewer_id)
            .correlate(Post)
            .exists()
        )

        try:
            result = await db.execute(
                select(Post, User.username, User.avatar_url, comments_count, user_has_liked)
                .join(User, Post.user_id == User.id)
                .where(relationship_service.visibility_clause(viewer_id))
                .order_by(Post.created_at.desc(), Post.id.desc())
                .limit(limit)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error building feed for %s: %s", viewer_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load the feed. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [
            FeedItem(
                **self._post_fields(post, username, avatar_url),
                comments_count=n_comments or 0,
                user_has_liked=bool(liked),
            )
            for post, username, avatar_url, n_comments, liked in rows
        ]

    async def user_posts(self, db: AsyncSession, viewer_id: int, owner_id: int) -> List[PostItem]:
        owner = await db.get(User, owner_id)
        if owner is None:
            raise NotFoundError(resource="account", resource_id=str(owner_id))
        if not await relationship_service.can_view(db, viewer_id, owner):
            raise ForbiddenError(
                message="This account is private. Follow it to see its posts.",
                context={"user_id": owner_id},
            )

        result = await db.execute(
            select(Post)
            .where(Post.user_id == owner_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
        )
        return [
            PostItem(**self._post_fields(post, owner.username, owner.avatar_url))
            for post in result.scalars().all()
        ]

    @staticmethod
    def _post_fields(post: Post, username: str, avatar_url: str) -> dict:
        return {
            "id": post.id,
            "user_id": post.user_id,
            "username": username,
            "avatar_url": avatar_url,
            "content": post.content,
            "image_url": post.image_url,
            "video_url": post.video_url,
            "type": post.type,
            "likes_count": post.likes_count,
            "created_at": post.created_at,
        }

    # ── Likes ─────────────────────────────────────────────────────────────

    async def like(self, db: AsyncSession, actor_id: int, post_id: int) -> LikeResponse:
        """
        Idempotent like. A repeated like inserts nothing, leaves the counter
        unchanged and emits no second notification.
        """
        post = await self.get_visible_post(db, actor_id, post_id)

        inserted = await self._insert_like(db, actor_id, post_id)
        likes_count = await self.recompute_likes_count(db, post_id)

        if inserted:
            await notification_service.notify_post_interaction(
                db, actor_id, post, NotificationType.LIKE
            )
            logger.info("Post %s liked by %s (count=%d)", post_id, actor_id, likes_count)
        return LikeResponse(liked=True, likes_count=likes_count)

    async def unlike(self, db: AsyncSession, actor_id: int, post_id: int) -> LikeResponse:
        """Remove the caller's like if present. Earlier notifications stay."""
        await self.get_post(db, post_id)
        await db.execute(
            delete(Like).where(Like.user_id == actor_id, Like.post_id == post_id)
        )
        likes_count = await self.recompute_likes_count(db, post_id)
        return LikeResponse(liked=False, likes_count=likes_count)

    async def _insert_like(self, db: AsyncSession, actor_id: int, post_id: int) -> bool:
        """Returns True when a new Like row was written."""
        stmt = insert_ignoring_conflicts(db, Like, ["user_id", "post_id"])
        if stmt is not None:
            result = await db.execute(stmt.values(user_id=actor_id, post_id=post_id))
            return result.rowcount == 1

        existing = await db.execute(
            select(Like.id).where(Like.user_id == actor_id, Like.post_id == post_id)
        )
        if existing.scalar_one_or_none() is not None:
            return False
        db.add(Like(user_id=actor_id, post_id=post_id))
        await db.flush()
        return True

    async def recompute_likes_count(self, db: AsyncSession, post_id: int) -> int:
        """Set posts.likes_count from the Like set and return the new value."""
        await db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(
                likes_count=select(func.count(Like.id))
                .where(Like.post_id == post_id)
                .scalar_subquery()
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(select(Post.likes_count).where(Post.id == post_id))
        likes_count = result.scalar() or 0

        post = await db.get(Post, post_id)
        if post is not None:
            await db.refresh(post, attribute_names=["likes_count"])
        return likes_count

    # ── Comments ──────────────────────────────────────────────────────────

    async def add_comment(
        self, db: AsyncSession, actor_id: int, post_id: int, content: str
    ) -> Comment:
        content = (content or "").strip()
        if not content:
            raise ValidationError(message="Comment text is required", field="content")

        post = await self.get_visible_post(db, actor_id, post_id)
        comment = Comment(user_id=actor_id, post_id=post_id, content=content)
        db.add(comment)
        await db.flush()

        await notification_service.notify_post_interaction(
            db, actor_id, post, NotificationType.COMMENT
        )
        logger.info("Comment %s on post %s by %s", comment.id, post_id, actor_id)
        return comment

    async def list_comments(
        self, db: AsyncSession, viewer_id: int, post_id: int
    ) -> List[CommentItem]:
        await self.get_visible_post(db, viewer_id, post_id)
        result = await db.execute(
            select(Comment, User.username)
            .join(User, Comment.user_id == User.id)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return [
            CommentItem(
                id=comment.id,
                post_id=comment.post_id,
                user_id=comment.user_id,
                username=username,
                content=comment.content,
                created_at=comment.created_at,
            )
            for comment, username in result.all()
        ]

    async def delete_comment(self, db: AsyncSession, actor_id: int, comment_id: int) -> None:
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))
        if comment.user_id != actor_id:
            raise ForbiddenError(
                message="You can only delete your own comments",
                context={"comment_id": comment_id},
            )
        await db.delete(comment)
        await db.flush()
        logger.info("Comment %s deleted by %s", comment_id, actor_id)


post_service = PostService()
