"""
SQLAlchemy ORM models.

Tables:
  users           — user profiles + privacy flag
  follows         — confirmed social graph edges (follower → followee)
  follow_requests — pending follow intents towards private accounts
  entries         — a user's logged watch of a catalog title
  entry_tags      — free-form tags attached to an entry
  likes           — user × entry engagement
  comments        — user × entry discussion
"""
import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from watchhive.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp; every datetime column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EntryKind(str, enum.Enum):
    MOVIE = "MOVIE"
    TV_SHOW = "TV_SHOW"
    EPISODE = "EPISODE"


class FollowRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    # Private accounts only expose entries to confirmed followers
    is_private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    entries = relationship("Entry", back_populates="user", lazy="noload")


class Follow(Base):
    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    followee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        # "who follows user X?": follower lists and counts
        Index("idx_followee", "followee_id"),
    )


class FollowRequest(Base):
    __tablename__ = "follow_requests"

    request_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sender_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    recipient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    status: Mapped[FollowRequestStatus] = mapped_column(
        Enum(FollowRequestStatus, native_enum=False, length=16),
        default=FollowRequestStatus.PENDING,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("sender_id", "recipient_id", name="uq_follow_request_pair"),
        Index("idx_follow_requests_recipient", "recipient_id", "status"),
    )


class Entry(Base):
    __tablename__ = "entries"

    entry_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    # TMDB id of the title; never changes after creation
    catalog_id: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    kind: Mapped[EntryKind] = mapped_column(
        Enum(EntryKind, native_enum=False, length=16), nullable=False
    )
    watched_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer)   # 1..10
    review: Mapped[Optional[str]] = mapped_column(Text)
    is_rewatch: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    watch_location: Mapped[Optional[str]] = mapped_column(String(255))
    like_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    user = relationship("User", back_populates="entries", lazy="joined")
    tags = relationship(
        "EntryTag",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="EntryTag.tag",
    )

    __table_args__ = (
        Index("idx_entries_user_created", "user_id", "created_at"),
        Index("idx_entries_user_watched", "user_id", "watched_at"),
    )

    @property
    def tag_names(self) -> list[str]:
        return [t.tag for t in self.tags]


class EntryTag(Base):
    __tablename__ = "entry_tags"

    entry_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("entries.entry_id"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(String(100), primary_key=True)


class Like(Base):
    __tablename__ = "likes"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    entry_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("entries.entry_id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Comment(Base):
    __tablename__ = "comments"

    comment_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    entry_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("entries.entry_id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("idx_comments_entry", "entry_id"),)
