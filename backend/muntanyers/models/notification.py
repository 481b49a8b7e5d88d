"""
muntanyers Backend: Notification Model
======================================

What:  ORM model for the append-only `notifications` log.
Who:   Written only by NotificationService as a side effect of follow,
       accept, like and comment; read by the recipient's notification feed.

Rules:
    - Immutable once created, except `is_read`, which only flips to true.
    - `from_user_id` is a weak reference: it becomes NULL when the
      originating account is deleted, the row itself survives.
    - `post_id` becomes NULL when the referenced post is deleted.
    - Rows are removed only when the recipient account is deleted.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from muntanyers.database import Base, utcnow


class NotificationType(str, Enum):
    FOLLOW_REQUEST = "follow_request"
    FOLLOW_ACCEPTED = "follow_accepted"
    LIKE = "like"
    COMMENT = "comment"


class Notification(Base):
    """One event addressed to one recipient account."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Recipient
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Originator
    from_user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    type: Mapped[str] = mapped_column(String(30), nullable=False)

    post_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_read: Mapped[bool] = mapped_column(
        "read",
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, user_id={self.user_id}, "
            f"type='{self.type}', read={self.is_read})>"
        )
