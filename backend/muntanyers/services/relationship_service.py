"""
muntanyers Backend: Relationship Ledger Service
===============================================

What:  Decides and records the outcome of follow attempts, gates accept and
       reject to the followee, and answers visibility questions.
Who:   Called by the social and users routes; PostService uses the
       visibility clause for the feed.

Transition table (next_follow_status):
    current     action    target      → new status
    ─────────   ───────   ─────────     ──────────
    any/absent  request   private     → pending
    any/absent  request   public      → accepted
    pending     accept    -           → accepted
    pending     reject    -           → rejected
    other       accept/reject         → InvalidTransitionError

A repeated request never remembers a past rejection: it is re-evaluated from
the target's privacy flag at the time of the call.
"""

import logging
from enum import Enum
from typing import Optional

from sqlalchemy import exists, false, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from muntanyers.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from muntanyers.models.follow import Follow, FollowStatus
from muntanyers.models.user import User
from muntanyers.services.notification_service import notification_service

logger = logging.getLogger(__name__)


class FollowAction(str, Enum):
    REQUEST = "request"
    ACCEPT = "accept"
    REJECT = "reject"


def next_follow_status(
    current: Optional[FollowStatus],
    action: FollowAction,
    target_private: bool,
) -> FollowStatus:
    """
    Pure transition function of the relationship state machine.

    Args:
        current:        status of the existing edge, or None when absent
        action:         request, accept or reject
        target_private: privacy flag of the followee right now

    Raises:
        InvalidTransitionError: accept/reject on an edge that is not pending
    """
    if action is FollowAction.REQUEST:
        return FollowStatus.PENDING if target_private else FollowStatus.ACCEPTED

    if current is not FollowStatus.PENDING:
        raise InvalidTransitionError(
            current=current.value if current else None,
            action=action.value,
        )
    if action is FollowAction.ACCEPT:
        return FollowStatus.ACCEPTED
    return FollowStatus.REJECTED


class RelationshipService:
    """
    Ledger operations. Every method takes the acting account id explicitly.

    Writes and the notifications they cause share the request's session and
    are committed together by get_db_session.
    """

    async def get_edge(
        self, db: AsyncSession, follower_id: int, followee_id: int
    ) -> Optional[Follow]:
        result = await db.execute(
            select(Follow).where(
                Follow.follower_id == follower_id,
                Follow.followee_id == followee_id,
            )
        )
        return result.scalar_one_or_none()

    async def request_follow(
        self, db: AsyncSession, follower_id: int, followee_id: int
    ) -> FollowStatus:
        """
        RequestFollow: create or re-evaluate the edge follower → followee.

        Returns:
            FollowStatus.PENDING when the followee is private (a
            follow_request notification is emitted), FollowStatus.ACCEPTED
            otherwise (no notification).

        Raises:
            ValidationError: follower and followee are the same account
            NotFoundError:   followee does not exist
        """
        if follower_id == followee_id:
            raise ValidationError(
                message="You cannot follow yourself",
                field="user_id",
                context={"user_id": followee_id},
            )

        target = await db.get(User, followee_id)
        if target is None:
            raise NotFoundError(resource="account", resource_id=str(followee_id))

        edge = await self.get_edge(db, follower_id, followee_id)
        current = FollowStatus(edge.status) if edge else None
        status = next_follow_status(current, FollowAction.REQUEST, target.is_private)

        if edge is None:
            db.add(Follow(follower_id=follower_id, followee_id=followee_id, status=status.value))
        else:
            edge.status = status.value
        try:
            await db.flush()
        except IntegrityError as e:
            # A concurrent request inserted the same pair first
            raise ConflictError(
                message="A follow request for this account is already being processed",
                context={"follower_id": follower_id, "followee_id": followee_id},
            ) from e

        logger.info(
            "Follow %s -> %s: %s -> %s",
            follower_id,
            followee_id,
            current.value if current else "none",
            status.value,
        )

        if status is FollowStatus.PENDING:
            await notification_service.notify_follow_request(db, follower_id, followee_id)
        return status

    async def resolve_follow_request(
        self,
        db: AsyncSession,
        followee_id: int,
        follower_id: int,
        action: str,
    ) -> FollowStatus:
        """
        ResolveFollowRequest: the followee accepts or rejects a pending edge.

        The caller identity is the followee, so only the addressed account
        can ever resolve its own requests.

        Raises:
            ValidationError:        action is neither accept nor reject
            NotFoundError:          no edge follower → followee exists
            InvalidTransitionError: the edge is not pending
        """
        try:
            parsed = FollowAction(action)
        except ValueError:
            parsed = None
        if parsed not in (FollowAction.ACCEPT, FollowAction.REJECT):
            raise ValidationError(
                message=f"Unknown action '{action}'. Use 'accept' or 'reject'.",
                field="action",
            )

        edge = await self.get_edge(db, follower_id, followee_id)
        if edge is None:
            raise NotFoundError(
                resource="follow request",
                context={"follower_id": follower_id, "followee_id": followee_id},
            )

        status = next_follow_status(FollowStatus(edge.status), parsed, target_private=True)
        edge.status = status.value
        await db.flush()
        logger.info("Follow request %s -> %s %s", follower_id, followee_id, status.value)

        if status is FollowStatus.ACCEPTED:
            await notification_service.notify_follow_accepted(db, followee_id, follower_id)
        return status

    # ── Queries ───────────────────────────────────────────────────────────

    async def follower_count(self, db: AsyncSession, account_id: int) -> int:
        result = await db.execute(
            select(func.count(Follow.id)).where(
                Follow.followee_id == account_id,
                Follow.status == FollowStatus.ACCEPTED.value,
            )
        )
        return result.scalar() or 0

    async def following_count(self, db: AsyncSession, account_id: int) -> int:
        result = await db.execute(
            select(func.count(Follow.id)).where(
                Follow.follower_id == account_id,
                Follow.status == FollowStatus.ACCEPTED.value,
            )
        )
        return result.scalar() or 0

    def visibility_clause(self, viewer_id: int):
        """
        SQL condition on User (the author) that is true when viewer_id may see
        the author's posts: public account, own account, or accepted edge.
        """
        accepted_edge = exists().where(
            Follow.follower_id == viewer_id,
            Follow.followee_id == User.id,
            Follow.status == FollowStatus.ACCEPTED.value,
        )
        return or_(User.is_private == false(), User.id == viewer_id, accepted_edge)

    async def can_view(self, db: AsyncSession, viewer_id: int, owner: User) -> bool:
        if not owner.is_private or owner.id == viewer_id:
            return True
        edge = await self.get_edge(db, viewer_id, owner.id)
        return edge is not None and edge.status == FollowStatus.ACCEPTED.value


relationship_service = RelationshipService()
