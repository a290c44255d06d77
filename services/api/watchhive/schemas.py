"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.
Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from watchhive.models import EntryKind, FollowRequestStatus


class ApiModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ──────────────────────────── Users ───────────────────────────────────────

class UserCreate(ApiModel):
    username: str = Field(..., min_length=3, max_length=100)
    display_name: Optional[str] = None
    is_private: bool = False


class UserUpdate(ApiModel):
    display_name: Optional[str] = None
    is_private: Optional[bool] = None


class UserResponse(ApiModel):
    user_id: str
    username: str
    display_name: Optional[str]
    is_private: bool
    created_at: datetime


class UserProfileResponse(UserResponse):
    follower_count: int
    following_count: int


# ──────────────────────────── Follows ─────────────────────────────────────

class FollowResult(ApiModel):
    status: Literal["FOLLOWING", "PENDING"]
    message: str
    request_id: Optional[str] = None


class FollowStatusResponse(ApiModel):
    is_following: bool
    request_pending: bool


class FollowRequestResponse(ApiModel):
    request_id: str
    sender_id: str
    recipient_id: str
    status: FollowRequestStatus
    created_at: datetime


class FollowListResponse(ApiModel):
    user_id: str
    user_ids: list[str]


# ──────────────────────────── Entries ─────────────────────────────────────

class EntryCreate(ApiModel):
    catalog_id: int
    title: str = Field(..., min_length=1, max_length=500)
    kind: EntryKind
    watched_at: Optional[datetime] = None
    rating: Optional[int] = Field(None, ge=1, le=10)
    review: Optional[str] = None
    tags: list[str] = []
    is_rewatch: bool = False
    watch_location: Optional[str] = None


class EntryResponse(ApiModel):
    entry_id: str
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    catalog_id: int
    title: str
    kind: EntryKind
    watched_at: datetime
    rating: Optional[int]
    review: Optional[str]
    tags: list[str]
    is_rewatch: bool
    watch_location: Optional[str]
    like_count: int
    comment_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry: Any, author: Any = None) -> "EntryResponse":
        author = author or entry.user
        return cls(
            entry_id=entry.entry_id,
            user_id=entry.user_id,
            username=author.username if author else None,
            display_name=author.display_name if author else None,
            catalog_id=entry.catalog_id,
            title=entry.title,
            kind=entry.kind,
            watched_at=entry.watched_at,
            rating=entry.rating,
            review=entry.review,
            tags=entry.tag_names,
            is_rewatch=entry.is_rewatch,
            watch_location=entry.watch_location,
            like_count=entry.like_count,
            comment_count=entry.comment_count,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class Pagination(ApiModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class EntryListResponse(ApiModel):
    entries: list[EntryResponse]
    pagination: Pagination


class LikeResponse(ApiModel):
    entry_id: str
    like_count: int
    is_liked: bool


class CommentCreate(ApiModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(ApiModel):
    comment_id: str
    entry_id: str
    user_id: str
    content: str
    created_at: datetime


# ──────────────────────────── Catalog ─────────────────────────────────────

class CatalogItem(ApiModel):
    """A TMDB movie or TV result, normalised across both shapes."""
    id: int
    title: str
    media_type: Optional[str] = None
    poster_path: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: Optional[float] = None
    overview: Optional[str] = None

    @classmethod
    def from_tmdb(cls, raw: dict[str, Any], media_type: Optional[str] = None) -> "CatalogItem":
        return cls(
            id=raw["id"],
            title=raw.get("title") or raw.get("name") or "",
            media_type=raw.get("media_type") or media_type,
            poster_path=raw.get("poster_path"),
            release_date=raw.get("release_date") or raw.get("first_air_date"),
            vote_average=raw.get("vote_average"),
            overview=raw.get("overview"),
        )


# ──────────────────────────── Feed ────────────────────────────────────────

class EntryFeedItem(ApiModel):
    """A followed user's (or the viewer's own) entry."""
    type: Literal["ENTRY"] = "ENTRY"
    id: str
    timestamp: datetime
    entry: EntryResponse
    is_liked: bool
    is_watched: bool
    # Ranking signal exposed for debugging
    score: float


class SuggestionFeedItem(ApiModel):
    """A catalog title spliced into the feed."""
    type: Literal["SUGGESTION"] = "SUGGESTION"
    id: str
    timestamp: datetime
    candidate: CatalogItem
    reason: str
    is_watched: bool


FeedItem = Annotated[Union[EntryFeedItem, SuggestionFeedItem], Field(discriminator="type")]


class FeedResponse(ApiModel):
    items: list[FeedItem]
    next_page: Optional[int]
    has_more: bool
