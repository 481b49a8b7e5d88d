"""
muntanyers Backend: Relationship Ledger Model
=============================================

What:  ORM model for the `followers` table: one directed edge per
       (follower, followee) pair with a status.
Who:   RelationshipService is the only writer.

State machine (decided by relationship_service.next_follow_status):

    [no edge] --request (target public)--> accepted
    [no edge] --request (target private)--> pending
    pending   --accept--> accepted
    pending   --reject--> rejected
    accepted|rejected --request--> re-evaluated from current target privacy

A→B and B→A are distinct edges. The unique constraint on the ordered pair
makes a repeated request overwrite the existing row.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from muntanyers.database import Base, utcnow


class FollowStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Follow(Base):
    """A ledger edge from `follower_id` to `followee_id`."""

    __tablename__ = "followers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    follower_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    followee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=FollowStatus.PENDING.value,
        server_default=text("'pending'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("follower_id", "followee_id", name="uq_followers_pair"),
        Index("idx_followers_followee_status", "followee_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Follow(follower_id={self.follower_id}, followee_id={self.followee_id}, "
            f"status='{self.status}')>"
        )
