"""
muntanyers Backend: Account Service (Account Store)
===================================================

What:  Registration, authentication, profiles, passwords, search, avatars
       and account deletion.
Who:   Called by the auth and users routes.

Account deletion runs inside the request transaction, in this order:
    1. Remember which foreign posts the account had liked
    2. Notifications: drop the account's own, detach it as originator
    3. Likes and comments written by the account
    4. The account's posts (with their likes, comments, notification refs)
    5. Recompute like counters of the remembered foreign posts
    6. Follow edges in both directions
    7. The account row
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from muntanyers.config import settings
from muntanyers.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from muntanyers.models.follow import Follow, FollowStatus
from muntanyers.models.notification import Notification
from muntanyers.models.post import Comment, Like, Post
from muntanyers.models.user import User
from muntanyers.schemas.accounts import (
    OwnProfileResponse,
    PublicProfileResponse,
    UserSearchItem,
)
from muntanyers.security import hash_password, verify_password
from muntanyers.services.file_service import file_service
from muntanyers.services.post_service import post_service
from muntanyers.services.relationship_service import relationship_service

logger = logging.getLogger(__name__)


class AccountService:
    """Business logic for accounts. Every method takes the acting account id explicitly."""

    async def get_user(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="account", resource_id=str(user_id))
        return user

    async def _get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    # ── Registration & Login ──────────────────────────────────────────────

    async def register(
        self, db: AsyncSession, username: str, email: str, password: str
    ) -> User:
        """
        Create an account.

        Raises:
            ValidationError: a field is empty or the password is too long
            ConflictError:   the username or email is already taken
        """
        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email or not password:
            raise ValidationError(message="All fields are required")

        existing = await db.execute(
            select(User.id).where(or_(User.username == username, User.email == email))
        )
        if existing.first() is not None:
            raise ConflictError(message="Username or email already exists")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError(message="Username or email already exists") from e

        logger.info("Account registered: %s (id=%s)", username, user.id)
        return user

    async def authenticate(self, db: AsyncSession, username: str, password: str) -> User:
        user = await self._get_by_username(db, (username or "").strip())
        if user is None or not verify_password(password or "", user.password_hash):
            logger.info("Failed login for '%s'", username)
            raise AuthenticationError(message="Invalid username or password")
        return user

    # ── Profiles ──────────────────────────────────────────────────────────

    async def _post_count(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(select(func.count(Post.id)).where(Post.user_id == user_id))
        return result.scalar() or 0

    async def own_profile(self, db: AsyncSession, user_id: int) -> OwnProfileResponse:
        user = await self.get_user(db, user_id)
        return OwnProfileResponse(
            id=user.id,
            username=user.username,
            email=user.email,
            bio=user.bio,
            avatar_url=user.avatar_url,
            private=user.is_private,
            created_at=user.created_at,
            post_count=await self._post_count(db, user.id),
            follower_count=await relationship_service.follower_count(db, user.id),
            following_count=await relationship_service.following_count(db, user.id),
        )

    async def profile_by_username(
        self, db: AsyncSession, viewer_id: int, username: str
    ) -> PublicProfileResponse:
        user = await self._get_by_username(db, username)
        if user is None:
            raise NotFoundError(resource="account", resource_id=username)

        edge = await relationship_service.get_edge(db, viewer_id, user.id)
        status = edge.status if edge else None
        return PublicProfileResponse(
            id=user.id,
            username=user.username,
            bio=user.bio,
            avatar_url=user.avatar_url,
            private=user.is_private,
            created_at=user.created_at,
            post_count=await self._post_count(db, user.id),
            follower_count=await relationship_service.follower_count(db, user.id),
            following_count=await relationship_service.following_count(db, user.id),
            is_following=status == FollowStatus.ACCEPTED.value,
            has_pending_request=status == FollowStatus.PENDING.value,
        )

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: int,
        username: str,
        bio: str,
        private: bool,
    ) -> User:
        """
        Change username, bio and privacy.

        Turning an account public leaves pending requests pending; they can
        still be accepted or rejected.
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError(message="Username is required", field="username")

        user = await self.get_user(db, user_id)
        taken = await db.execute(
            select(User.id).where(User.username == username, User.id != user_id)
        )
        if taken.first() is not None:
            raise ConflictError(message="Username already taken", context={"username": username})

        user.username = username
        user.bio = bio or ""
        user.is_private = bool(private)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError(message="Username already taken") from e

        logger.info("Profile updated for %s (private=%s)", user_id, user.is_private)
        return user

    async def change_password(
        self, db: AsyncSession, user_id: int, current_password: str, new_password: str
    ) -> None:
        if not new_password:
            raise ValidationError(message="New password is required", field="new_password")

        user = await self.get_user(db, user_id)
        if not verify_password(current_password or "", user.password_hash):
            raise ValidationError(
                message="Current password is incorrect",
                field="current_password",
            )
        user.password_hash = hash_password(new_password)
        await db.flush()
        logger.info("Password changed for %s", user_id)

    # ── Search ────────────────────────────────────────────────────────────

    async def search_users(
        self,
        db: AsyncSession,
        viewer_id: int,
        query: str = "",
        limit: Optional[int] = None,
    ) -> List[UserSearchItem]:
        """Case-insensitive username substring search, excluding the viewer."""
        limit = limit or settings.search_limit
        follower_count = (
            select(func.count(Follow.id))
            .where(
                Follow.followee_id == User.id,
                Follow.status == FollowStatus.ACCEPTED.value,
            )
            .correlate(User)
            .scalar_subquery()
        )

        stmt = select(User, follower_count).where(User.id != viewer_id)
        query = (query or "").strip()
        if query:
            stmt = stmt.where(
                func.lower(User.username).contains(query.lower(), autoescape=True)
            )
        stmt = stmt.order_by(User.username.asc()).limit(limit)

        try:
            result = await db.execute(stmt)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error searching users: %s", str(e))
            raise DatabaseError(
                message="Search failed. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [
            UserSearchItem(
                id=user.id,
                username=user.username,
                avatar_url=user.avatar_url,
                bio=user.bio,
                follower_count=count or 0,
            )
            for user, count in rows
        ]

    # ── Avatar ────────────────────────────────────────────────────────────

    async def set_avatar(
        self,
        db: AsyncSession,
        user_id: int,
        filename: str,
        content_type: Optional[str],
        content: bytes,
    ) -> Tuple[str, str]:
        """
        Store a new avatar and point the account at it.

        The account row is committed here rather than by get_db_session, so
        a failed commit can still remove the file it would have referenced.

        Returns:
            (new avatar URL, previous avatar URL). The caller removes the
            previous file once the response has been sent.
        """
        user = await self.get_user(db, user_id)
        avatar_url = await file_service.store_avatar(user_id, filename, content_type, content)

        previous = user.avatar_url
        user.avatar_url = avatar_url
        try:
            await db.flush()
            await db.commit()
        except SQLAlchemyError:
            logger.warning("Avatar update for %s failed, removing %s", user_id, avatar_url)
            await file_service.remove_avatar(avatar_url)
            raise
        return avatar_url, previous

    # ── Deletion ──────────────────────────────────────────────────────────

    async def delete_account(self, db: AsyncSession, user_id: int, password: str) -> str:
        """
        Delete the account and everything it owns.

        Returns:
            The deleted account's avatar URL, for file cleanup after commit.

        Raises:
            ValidationError: the password does not verify
        """
        user = await self.get_user(db, user_id)
        if not password or not verify_password(password, user.password_hash):
            raise ValidationError(message="Incorrect password", field="password")

        own_post_ids = (
            await db.execute(select(Post.id).where(Post.user_id == user_id))
        ).scalars().all()

        liked_foreign_posts = (
            await db.execute(
                select(Like.post_id)
                .join(Post, Like.post_id == Post.id)
                .where(Like.user_id == user_id, Post.user_id != user_id)
                .distinct()
            )
        ).scalars().all()

        await db.execute(delete(Notification).where(Notification.user_id == user_id))
        await db.execute(
            update(Notification)
            .where(Notification.from_user_id == user_id)
            .values(from_user_id=None)
        )

        await db.execute(delete(Like).where(Like.user_id == user_id))
        await db.execute(delete(Comment).where(Comment.user_id == user_id))
        await post_service.delete_posts(db, own_post_ids)

        for post_id in liked_foreign_posts:
            await post_service.recompute_likes_count(db, post_id)

        await db.execute(
            delete(Follow).where(
                or_(Follow.follower_id == user_id, Follow.followee_id == user_id)
            )
        )
        avatar_url = user.avatar_url
        await db.execute(delete(User).where(User.id == user_id))

        logger.info(
            "Account %s deleted (%d posts, %d foreign likes recounted)",
            user_id,
            len(own_post_ids),
            len(liked_foreign_posts),
        )
        return avatar_url


account_service = AccountService()
