"""
muntanyers Backend: Relationship Ledger Tests
=============================================

What:  The follow state machine, both as a pure function and through
       RelationshipService against an in-memory database.

What we test:
    ✅ Transition table for request / accept / reject
    ✅ Private target → pending + one follow_request notification
    ✅ Public target → accepted, no notification
    ✅ Accept notifies the follower, reject is silent
    ✅ Re-request after rejection re-evaluates from current privacy
    ✅ Self-follow, unknown target, absent and non-pending edges
"""

import pytest
from sqlalchemy import func, select

from muntanyers.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from muntanyers.models.follow import Follow, FollowStatus
from muntanyers.models.notification import Notification, NotificationType
from muntanyers.services.relationship_service import (
    FollowAction,
    RelationshipService,
    next_follow_status,
)


async def _notifications(db, recipient_id):
    result = await db.execute(
        select(Notification).where(Notification.user_id == recipient_id).order_by(Notification.id)
    )
    return result.scalars().all()


async def _edge_count(db):
    result = await db.execute(select(func.count(Follow.id)))
    return result.scalar()


class TestNextFollowStatus:
    """The transition function needs no database."""

    @pytest.mark.parametrize("current", [None, FollowStatus.PENDING, FollowStatus.ACCEPTED, FollowStatus.REJECTED])
    def test_request_private_target_is_pending(self, current):
        assert next_follow_status(current, FollowAction.REQUEST, True) is FollowStatus.PENDING

    @pytest.mark.parametrize("current", [None, FollowStatus.PENDING, FollowStatus.ACCEPTED, FollowStatus.REJECTED])
    def test_request_public_target_is_accepted(self, current):
        assert next_follow_status(current, FollowAction.REQUEST, False) is FollowStatus.ACCEPTED

    def test_accept_pending(self):
        assert next_follow_status(FollowStatus.PENDING, FollowAction.ACCEPT, True) is FollowStatus.ACCEPTED

    def test_reject_pending(self):
        assert next_follow_status(FollowStatus.PENDING, FollowAction.REJECT, True) is FollowStatus.REJECTED

    @pytest.mark.parametrize("current", [None, FollowStatus.ACCEPTED, FollowStatus.REJECTED])
    @pytest.mark.parametrize("action", [FollowAction.ACCEPT, FollowAction.REJECT])
    def test_resolve_requires_pending(self, current, action):
        with pytest.raises(InvalidTransitionError) as exc_info:
            next_follow_status(current, action, True)
        assert exc_info.value.action == action.value

    def test_invalid_transition_is_a_conflict(self):
        with pytest.raises(ConflictError, match="absent"):
            next_follow_status(None, FollowAction.ACCEPT, True)


class TestRequestFollow:

    def setup_method(self):
        self.service = RelationshipService()

    @pytest.mark.asyncio
    async def test_private_target_pending_with_one_notification(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)

        status = await self.service.request_follow(db_session, alice.id, bob.id)

        assert status is FollowStatus.PENDING
        notifications = await _notifications(db_session, bob.id)
        assert len(notifications) == 1
        assert notifications[0].type == NotificationType.FOLLOW_REQUEST.value
        assert notifications[0].from_user_id == alice.id
        assert notifications[0].post_id is None
        assert notifications[0].is_read is False

    @pytest.mark.asyncio
    async def test_public_target_accepted_without_notification(self, db_session, make_user):
        alice = await make_user("alice")
        carol = await make_user("carol")

        status = await self.service.request_follow(db_session, alice.id, carol.id)

        assert status is FollowStatus.ACCEPTED
        assert await _notifications(db_session, carol.id) == []
        assert await self.service.follower_count(db_session, carol.id) == 1
        assert await self.service.following_count(db_session, alice.id) == 1

    @pytest.mark.asyncio
    async def test_repeat_request_keeps_single_edge(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)

        await self.service.request_follow(db_session, alice.id, bob.id)
        await self.service.request_follow(db_session, alice.id, bob.id)

        assert await _edge_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_edges_are_directional(self, db_session, make_user):
        alice = await make_user("alice")
        carol = await make_user("carol")

        await self.service.request_follow(db_session, alice.id, carol.id)

        assert await self.service.get_edge(db_session, carol.id, alice.id) is None
        assert await self.service.following_count(db_session, carol.id) == 0

    @pytest.mark.asyncio
    async def test_self_follow_rejected(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(ValidationError, match="yourself"):
            await self.service.request_follow(db_session, alice.id, alice.id)
        assert await _edge_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_unknown_target(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await self.service.request_follow(db_session, alice.id, 9999)


class TestResolveFollowRequest:

    def setup_method(self):
        self.service = RelationshipService()

    @pytest.mark.asyncio
    async def test_accept_notifies_follower(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.request_follow(db_session, alice.id, bob.id)

        status = await self.service.resolve_follow_request(db_session, bob.id, alice.id, "accept")

        assert status is FollowStatus.ACCEPTED
        edge = await self.service.get_edge(db_session, alice.id, bob.id)
        assert edge.status == FollowStatus.ACCEPTED.value
        notifications = await _notifications(db_session, alice.id)
        assert [(n.type, n.from_user_id) for n in notifications] == [
            (NotificationType.FOLLOW_ACCEPTED.value, bob.id)
        ]

    @pytest.mark.asyncio
    async def test_reject_is_silent(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.request_follow(db_session, alice.id, bob.id)

        status = await self.service.resolve_follow_request(db_session, bob.id, alice.id, "reject")

        assert status is FollowStatus.REJECTED
        assert await _notifications(db_session, alice.id) == []
        assert await self.service.follower_count(db_session, bob.id) == 0

    @pytest.mark.asyncio
    async def test_request_after_rejection_reevaluates(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.request_follow(db_session, alice.id, bob.id)
        await self.service.resolve_follow_request(db_session, bob.id, alice.id, "reject")

        # Still private: pending again, and bob hears about it again
        assert await self.service.request_follow(db_session, alice.id, bob.id) is FollowStatus.PENDING
        assert len(await _notifications(db_session, bob.id)) == 2

        await self.service.resolve_follow_request(db_session, bob.id, alice.id, "reject")
        bob.is_private = False
        await db_session.flush()

        assert await self.service.request_follow(db_session, alice.id, bob.id) is FollowStatus.ACCEPTED
        assert await _edge_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_absent_edge_not_found(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        with pytest.raises(NotFoundError):
            await self.service.resolve_follow_request(db_session, bob.id, alice.id, "accept")

    @pytest.mark.asyncio
    async def test_only_followee_can_resolve(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.request_follow(db_session, alice.id, bob.id)

        # alice trying to accept her own request addresses the edge bob → alice
        with pytest.raises(NotFoundError):
            await self.service.resolve_follow_request(db_session, alice.id, bob.id, "accept")

    @pytest.mark.asyncio
    async def test_already_accepted_is_conflict(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.request_follow(db_session, alice.id, bob.id)
        await self.service.resolve_follow_request(db_session, bob.id, alice.id, "accept")

        with pytest.raises(InvalidTransitionError):
            await self.service.resolve_follow_request(db_session, bob.id, alice.id, "reject")
        assert len(await _notifications(db_session, alice.id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_action(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.request_follow(db_session, alice.id, bob.id)

        for action in ("request", "block", ""):
            with pytest.raises(ValidationError, match="Unknown action"):
                await self.service.resolve_follow_request(db_session, bob.id, alice.id, action)

    @pytest.mark.asyncio
    async def test_going_public_keeps_pending_requests(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        await self.service.request_follow(db_session, alice.id, bob.id)

        bob.is_private = False
        await db_session.flush()

        edge = await self.service.get_edge(db_session, alice.id, bob.id)
        assert edge.status == FollowStatus.PENDING.value
        status = await self.service.resolve_follow_request(db_session, bob.id, alice.id, "accept")
        assert status is FollowStatus.ACCEPTED


class TestVisibility:

    def setup_method(self):
        self.service = RelationshipService()

    @pytest.mark.asyncio
    async def test_can_view(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob", private=True)
        carol = await make_user("carol")

        assert await self.service.can_view(db_session, alice.id, carol)
        assert await self.service.can_view(db_session, bob.id, bob)
        assert not await self.service.can_view(db_session, alice.id, bob)

        await self.service.request_follow(db_session, alice.id, bob.id)
        assert not await self.service.can_view(db_session, alice.id, bob)

        await self.service.resolve_follow_request(db_session, bob.id, alice.id, "accept")
        assert await self.service.can_view(db_session, alice.id, bob)
