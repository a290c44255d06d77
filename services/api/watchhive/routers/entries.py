"""
Entry endpoints:
  POST   /entries                — log a watched title
  GET    /entries                — list a user's entries (privacy-gated)
  GET    /entries/{id}           — fetch one entry (privacy-gated)
  DELETE /entries/{id}           — delete own entry with its likes and comments
  POST   /entries/{id}/like      — like an entry
  DELETE /entries/{id}/like      — remove a like
  POST   /entries/{id}/comments  — comment on an entry
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from opentelemetry import trace
from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.auth import get_current_user_id
from watchhive.database import get_db
from watchhive.errors import BadRequestError, NotFoundError
from watchhive.feed.visibility import ensure_can_view
from watchhive.models import Comment, Entry, EntryKind, EntryTag, Like, User, utcnow
from watchhive.schemas import (
    CommentCreate,
    CommentResponse,
    EntryCreate,
    EntryListResponse,
    EntryResponse,
    LikeResponse,
    Pagination,
)

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)

SORT_COLUMNS = {
    "watchedAt": Entry.watched_at,
    "createdAt": Entry.created_at,
    "rating": Entry.rating,
    "title": Entry.title,
}


def _clean_tags(tags: list[str]) -> list[str]:
    """Strip, drop blanks and repeats, keep first-seen order."""
    seen: set[str] = set()
    cleaned: list[str] = []
    for tag in tags:
        label = tag.strip()
        if not label or label in seen:
            continue
        seen.add(label)
        cleaned.append(label)
    return cleaned


async def _get_entry(db: AsyncSession, entry_id: str) -> Entry:
    entry = await db.get(Entry, entry_id)
    if not entry:
        raise NotFoundError("Entry not found")
    return entry


async def _get_visible_entry(db: AsyncSession, entry_id: str, viewer_id: str) -> Entry:
    entry = await _get_entry(db, entry_id)
    await ensure_can_view(db, viewer_id, entry.user)
    return entry


async def _adjust_counter(db: AsyncSession, entry: Entry, column, delta: int) -> None:
    """Apply `delta` to one of the entry's counters in SQL, never below zero."""
    await db.execute(
        update(Entry)
        .where(Entry.entry_id == entry.entry_id)
        .values({column: case((column + delta < 0, 0), else_=column + delta)})
        .execution_options(synchronize_session=False)
    )
    await db.refresh(entry, attribute_names=[column.key])


@router.post("", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    body: EntryCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("create_entry") as span:
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        entry = Entry(
            user_id=user_id,
            catalog_id=body.catalog_id,
            title=body.title.strip(),
            kind=body.kind,
            watched_at=body.watched_at or utcnow(),
            rating=body.rating,
            review=body.review.strip() if body.review else None,
            is_rewatch=body.is_rewatch,
            watch_location=body.watch_location.strip() if body.watch_location else None,
            tags=[EntryTag(tag=t) for t in _clean_tags(body.tags)],
        )
        db.add(entry)
        await db.flush()  # materialise entry_id and defaults

        span.set_attribute("entry.id", entry.entry_id)
        logger.info("Entry %s (%s) logged by %s", entry.entry_id, entry.catalog_id, user_id)
        return EntryResponse.from_entry(entry, author=user)


@router.get("", response_model=EntryListResponse)
async def list_entries(
    target_user_id: Optional[str] = Query(None, alias="userId"),
    kind: Optional[EntryKind] = Query(None, alias="type"),
    rating: Optional[int] = Query(None, ge=1, le=10),
    tag: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort_by: Literal["watchedAt", "createdAt", "rating", "title"] = Query("watchedAt", alias="sortBy"),
    order: Literal["asc", "desc"] = "desc",
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    owner_id = target_user_id or user_id

    if owner_id != user_id:
        owner = await db.get(User, owner_id)
        if not owner:
            raise NotFoundError("User not found")
        await ensure_can_view(db, user_id, owner)

    conditions = [Entry.user_id == owner_id]
    if kind:
        conditions.append(Entry.kind == kind)
    if rating:
        conditions.append(Entry.rating == rating)
    if tag:
        conditions.append(Entry.tags.any(EntryTag.tag == tag))
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Entry.title.ilike(pattern), Entry.review.ilike(pattern)))

    sort_column = SORT_COLUMNS[sort_by]
    ordering = sort_column.asc() if order == "asc" else sort_column.desc()

    rows = await db.execute(
        select(Entry)
        .where(*conditions)
        .order_by(ordering, Entry.entry_id)
        .offset(offset)
        .limit(limit)
    )
    entries = list(rows.unique().scalars().all())
    total = await db.scalar(select(func.count()).select_from(Entry).where(*conditions))

    return EntryListResponse(
        entries=[EntryResponse.from_entry(e) for e in entries],
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(entries) < total,
        ),
    )


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    entry = await _get_visible_entry(db, entry_id, user_id)
    return EntryResponse.from_entry(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("delete_entry"):
        entry = await db.get(Entry, entry_id)
        # Other users' entries are reported as missing
        if not entry or entry.user_id != user_id:
            raise NotFoundError("Entry not found")

        await db.execute(delete(Like).where(Like.entry_id == entry_id))
        await db.execute(delete(Comment).where(Comment.entry_id == entry_id))
        await db.delete(entry)
        logger.info("Entry %s deleted by %s", entry_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{entry_id}/like", response_model=LikeResponse, status_code=status.HTTP_201_CREATED
)
async def like_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("like_entry"):
        entry = await _get_visible_entry(db, entry_id, user_id)

        existing = await db.get(Like, (user_id, entry_id))
        if existing:
            raise BadRequestError("You have already liked this entry")

        db.add(Like(user_id=user_id, entry_id=entry_id))
        try:
            await db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent like from the same user
            await db.rollback()
            raise BadRequestError("You have already liked this entry") from exc
        await _adjust_counter(db, entry, Entry.like_count, 1)
        return LikeResponse(entry_id=entry_id, like_count=entry.like_count, is_liked=True)


@router.delete("/{entry_id}/like", response_model=LikeResponse)
async def unlike_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    entry = await _get_entry(db, entry_id)

    existing = await db.get(Like, (user_id, entry_id))
    if not existing:
        raise NotFoundError("You have not liked this entry")

    await db.delete(existing)
    await db.flush()
    await _adjust_counter(db, entry, Entry.like_count, -1)
    return LikeResponse(entry_id=entry_id, like_count=entry.like_count, is_liked=False)


@router.post(
    "/{entry_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def comment_on_entry(
    entry_id: str,
    body: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("comment_on_entry"):
        entry = await _get_visible_entry(db, entry_id, user_id)

        comment = Comment(user_id=user_id, entry_id=entry_id, content=body.content.strip())
        db.add(comment)
        await db.flush()
        await _adjust_counter(db, entry, Entry.comment_count, 1)
        return CommentResponse.model_validate(comment)
