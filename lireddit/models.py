from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lireddit.database import Base


def utcnow() -> datetime:
    """Current UTC time truncated to whole milliseconds (cursor precision)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def to_millis(value: datetime) -> str:
    """Render a timestamp as a millisecond epoch string (the cursor format)."""
    if value.tzinfo is None:
        # SQLite hands back naive datetimes; everything is stored as UTC.
        value = value.replace(tzinfo=timezone.utc)
    return str(int(value.timestamp() * 1000))


def from_millis(cursor: str) -> datetime:
    """Inverse of ``to_millis``; raises ValueError for a non-numeric cursor."""
    return datetime.fromtimestamp(int(cursor) / 1000, tz=timezone.utc)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships: lazy="raise" forces creators through the user loader
    # instead of silently loading (or skipping) them per row
    posts: Mapped[List["Post"]] = relationship(
        "Post", back_populates="creator", lazy="raise"
    )


# ---------------------------------------------------------------------------
# Post
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    __table_args__ = (
        # userPosts feed: one creator, newest first
        Index("ix_posts_creator_id_created_at", "creator_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Foreign key
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )

    # Relationships
    creator: Mapped["User"] = relationship("User", back_populates="posts", lazy="raise")
    votes: Mapped[List["Vote"]] = relationship(
        "Vote", back_populates="post", lazy="raise", passive_deletes=True
    )


# ---------------------------------------------------------------------------
# Vote (one row per user per post)
# ---------------------------------------------------------------------------
class Vote(Base):
    __tablename__ = "votes"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), primary_key=True
    )
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    post: Mapped["Post"] = relationship("Post", back_populates="votes", lazy="raise")
    user: Mapped[Optional["User"]] = relationship("User", lazy="raise")
