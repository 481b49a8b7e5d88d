"""
muntanyers Backend: Post Service Tests
======================================

What we test:
    ✅ Likes are idempotent; the counter always equals the Like set
    ✅ One like notification per new like, none for self-likes
    ✅ Unlike never retracts a notification
    ✅ Comments: validation, notification, ordering, owner-only delete
    ✅ Feed and user posts honour account privacy
    ✅ Post deletion removes likes and comments, keeps notifications
"""

import pytest
from sqlalchemy import func, select

from muntanyers.exceptions import ForbiddenError, NotFoundError, ValidationError
from muntanyers.models.notification import Notification, NotificationType
from muntanyers.models.post import Comment, Like, Post
from muntanyers.services.post_service import PostService
from muntanyers.services.relationship_service import relationship_service


async def _count(db, column, *criteria):
    result = await db.execute(select(func.count(column)).where(*criteria))
    return result.scalar()


async def _stored_likes_count(db, post_id):
    result = await db.execute(select(Post.likes_count).where(Post.id == post_id))
    return result.scalar()


class TestCreatePost:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_text_post(self, db_session, make_user):
        alice = await make_user("alice")
        post = await self.service.create_post(db_session, alice.id, "  first climb  ")
        assert post.id is not None
        assert post.content == "first climb"
        assert post.likes_count == 0

    @pytest.mark.asyncio
    async def test_image_only_post(self, db_session, make_user):
        alice = await make_user("alice")
        post = await self.service.create_post(
            db_session, alice.id, "", image_url="https://example.com/peak.jpg", post_type="image"
        )
        assert post.type == "image"

    @pytest.mark.asyncio
    async def test_empty_post_rejected(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(ValidationError):
            await self.service.create_post(db_session, alice.id, "   ")

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(ValidationError, match="Unknown post type"):
            await self.service.create_post(db_session, alice.id, "hi", post_type="poll")


class TestLikes:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_double_like_counts_once(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")

        first = await self.service.like(db_session, alice.id, post.id)
        second = await self.service.like(db_session, alice.id, post.id)

        assert first.likes_count == 1
        assert second.likes_count == 1
        assert second.liked is True
        assert await _count(db_session, Like.id, Like.post_id == post.id) == 1
        assert await _stored_likes_count(db_session, post.id) == 1
        assert await _count(
            db_session,
            Notification.id,
            Notification.user_id == bob.id,
            Notification.type == NotificationType.LIKE.value,
        ) == 1

    @pytest.mark.asyncio
    async def test_counter_tracks_like_set(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")

        await self.service.like(db_session, alice.id, post.id)
        result = await self.service.like(db_session, carol.id, post.id)
        assert result.likes_count == 2

        result = await self.service.unlike(db_session, alice.id, post.id)
        assert result.liked is False
        assert result.likes_count == 1
        assert await _stored_likes_count(db_session, post.id) == 1

        # Unliking twice is harmless
        result = await self.service.unlike(db_session, alice.id, post.id)
        assert result.likes_count == 1

    @pytest.mark.asyncio
    async def test_self_like_no_notification(self, db_session, make_user):
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "selfie")

        result = await self.service.like(db_session, bob.id, post.id)

        assert result.likes_count == 1
        assert await _count(db_session, Notification.id) == 0

    @pytest.mark.asyncio
    async def test_unlike_keeps_notification(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")

        await self.service.like(db_session, alice.id, post.id)
        await self.service.unlike(db_session, alice.id, post.id)

        assert await _count(db_session, Notification.id, Notification.user_id == bob.id) == 1

    @pytest.mark.asyncio
    async def test_relike_after_unlike_notifies_again(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")

        await self.service.like(db_session, alice.id, post.id)
        await self.service.unlike(db_session, alice.id, post.id)
        await self.service.like(db_session, alice.id, post.id)

        assert await _count(db_session, Notification.id, Notification.user_id == bob.id) == 2

    @pytest.mark.asyncio
    async def test_like_missing_post(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await self.service.like(db_session, alice.id, 4242)


class TestComments:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_comment_notifies_owner(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")

        comment = await self.service.add_comment(db_session, alice.id, post.id, "  wow  ")

        assert comment.content == "wow"
        result = await db_session.execute(select(Notification).where(Notification.user_id == bob.id))
        [notification] = result.scalars().all()
        assert notification.type == NotificationType.COMMENT.value
        assert notification.from_user_id == alice.id
        assert notification.post_id == post.id

    @pytest.mark.asyncio
    async def test_self_comment_no_notification(self, db_session, make_user):
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")

        await self.service.add_comment(db_session, bob.id, post.id, "thanks all")

        assert await _count(db_session, Notification.id) == 0

    @pytest.mark.asyncio
    async def test_empty_comment_rejected(self, db_session, make_user):
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")
        with pytest.raises(ValidationError):
            await self.service.add_comment(db_session, bob.id, post.id, "   ")

    @pytest.mark.asyncio
    async def test_list_oldest_first(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")
        await self.service.add_comment(db_session, alice.id, post.id, "one")
        await self.service.add_comment(db_session, bob.id, post.id, "two")

        comments = await self.service.list_comments(db_session, alice.id, post.id)

        assert [(c.username, c.content) for c in comments] == [("alice", "one"), ("bob", "two")]

    @pytest.mark.asyncio
    async def test_delete_own_comment_only(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")
        comment = await self.service.add_comment(db_session, alice.id, post.id, "mine")

        with pytest.raises(ForbiddenError):
            await self.service.delete_comment(db_session, bob.id, comment.id)

        await self.service.delete_comment(db_session, alice.id, comment.id)
        assert await _count(db_session, Comment.id) == 0

        with pytest.raises(NotFoundError):
            await self.service.delete_comment(db_session, alice.id, comment.id)


class TestDeletePost:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_owner_deletes_with_dependents(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = await self.service.create_post(db_session, bob.id, "ridge walk")
        post_id = post.id
        await self.service.like(db_session, alice.id, post_id)
        await self.service.add_comment(db_session, alice.id, post_id, "wow")

        with pytest.raises(ForbiddenError):
            await self.service.delete_post(db_session, alice.id, post_id)

        await self.service.delete_post(db_session, bob.id, post_id)

        assert await _count(db_session, Post.id) == 0
        assert await _count(db_session, Like.id) == 0
        assert await _count(db_session, Comment.id) == 0
        # Notifications stay, without the post reference
        assert await _count(db_session, Notification.id, Notification.user_id == bob.id) == 2
        assert await _count(db_session, Notification.id, Notification.post_id.is_not(None)) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_post(self, db_session, make_user):
        bob = await make_user("bob")
        with pytest.raises(NotFoundError):
            await self.service.delete_post(db_session, bob.id, 777)


class TestVisibility:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_feed_honours_privacy(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        carol = await make_user("carol")
        await self.service.create_post(db_session, alice.id, "alice post")
        await self.service.create_post(db_session, bob.id, "bob post")
        await self.service.create_post(db_session, carol.id, "carol post")

        feed = await self.service.feed(db_session, alice.id)
        assert {item.content for item in feed} == {"alice post", "carol post"}

        await relationship_service.request_follow(db_session, alice.id, bob.id)
        feed = await self.service.feed(db_session, alice.id)
        assert "bob post" not in {item.content for item in feed}

        await relationship_service.resolve_follow_request(db_session, bob.id, alice.id, "accept")
        feed = await self.service.feed(db_session, alice.id)
        assert {item.content for item in feed} == {"alice post", "bob post", "carol post"}

        own_feed = await self.service.feed(db_session, bob.id)
        assert "bob post" in {item.content for item in own_feed}

    @pytest.mark.asyncio
    async def test_feed_counters(self, db_session, make_user):
        alice = await make_user("alice")
        carol = await make_user("carol")
        post = await self.service.create_post(db_session, carol.id, "carol post")
        await self.service.like(db_session, alice.id, post.id)
        await self.service.add_comment(db_session, alice.id, post.id, "1")
        await self.service.add_comment(db_session, carol.id, post.id, "2")

        [for_alice] = await self.service.feed(db_session, alice.id)
        [for_carol] = await self.service.feed(db_session, carol.id)

        assert for_alice.username == "carol"
        assert for_alice.likes_count == 1
        assert for_alice.comments_count == 2
        assert for_alice.user_has_liked is True
        assert for_carol.user_has_liked is False

    @pytest.mark.asyncio
    async def test_feed_newest_first(self, db_session, make_user):
        alice = await make_user("alice")
        first = await self.service.create_post(db_session, alice.id, "first")
        second = await self.service.create_post(db_session, alice.id, "second")
        first.created_at = second.created_at
        await db_session.flush()

        feed = await self.service.feed(db_session, alice.id)

        assert [item.id for item in feed] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_user_posts_private_forbidden(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.create_post(db_session, bob.id, "bob post")

        with pytest.raises(ForbiddenError):
            await self.service.user_posts(db_session, alice.id, bob.id)

        own = await self.service.user_posts(db_session, bob.id, bob.id)
        assert [p.content for p in own] == ["bob post"]

    @pytest.mark.asyncio
    async def test_user_posts_unknown_user(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await self.service.user_posts(db_session, alice.id, 999)

    @pytest.mark.asyncio
    async def test_private_post_interactions_forbidden(self, db_session, make_user):
        bob = await make_user("bob", private=True)
        eve = await make_user("eve")
        post = await self.service.create_post(db_session, bob.id, "bob post")

        with pytest.raises(ForbiddenError):
            await self.service.like(db_session, eve.id, post.id)
        with pytest.raises(ForbiddenError):
            await self.service.add_comment(db_session, eve.id, post.id, "hi")
        with pytest.raises(ForbiddenError):
            await self.service.list_comments(db_session, eve.id, post.id)

        assert await _count(db_session, Like.id, Like.post_id == post.id) == 0
        assert await _count(db_session, Comment.id, Comment.post_id == post.id) == 0
        assert await _count(db_session, Notification.id, Notification.user_id == bob.id) == 0

    @pytest.mark.asyncio
    async def test_pending_follower_still_forbidden(self, db_session, make_user):
        bob = await make_user("bob", private=True)
        eve = await make_user("eve")
        post = await self.service.create_post(db_session, bob.id, "bob post")
        await relationship_service.request_follow(db_session, eve.id, bob.id)

        with pytest.raises(ForbiddenError):
            await self.service.like(db_session, eve.id, post.id)

    @pytest.mark.asyncio
    async def test_accepted_follower_interacts(self, db_session, make_user):
        bob = await make_user("bob", private=True)
        eve = await make_user("eve")
        post = await self.service.create_post(db_session, bob.id, "bob post")
        await relationship_service.request_follow(db_session, eve.id, bob.id)
        await relationship_service.resolve_follow_request(db_session, bob.id, eve.id, "accept")

        response = await self.service.like(db_session, eve.id, post.id)
        await self.service.add_comment(db_session, eve.id, post.id, "nice")
        comments = await self.service.list_comments(db_session, eve.id, post.id)

        assert response.likes_count == 1
        assert [c.content for c in comments] == ["nice"]

        own = await self.service.list_comments(db_session, bob.id, post.id)
        assert len(own) == 1
