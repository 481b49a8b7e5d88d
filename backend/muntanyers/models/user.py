"""
muntanyers Backend: Account SQLAlchemy Model
============================================

What:  ORM model for the `users` table (the Account Store).
Who:   Read by every service; written by AccountService.

Lifecycle:
    1. Created at registration
    2. Mutated by profile, password and avatar updates
    3. Deleted on account closure; AccountService removes the rows the
       account owns in the same transaction (see account_service.py)

Uniqueness of username and email is enforced by the database and is one of
the few concurrency guarantees the application relies on.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, false, text
from sqlalchemy.orm import Mapped, mapped_column

from muntanyers.database import Base, utcnow


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Public handle, unique across accounts",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )

    # bcrypt hash; the plain password never reaches the database
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    bio: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    # Public URL path of the current avatar ("" when none uploaded)
    avatar_url: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        server_default=text("''"),
    )

    # Private accounts turn follow attempts into pending requests
    is_private: Mapped[bool] = mapped_column(
        "private",
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

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', private={self.is_private})>"
