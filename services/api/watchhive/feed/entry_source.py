"""
Entry feed source — one page of social entries, ranked inside the page.

Storage hands back the page by recency (newest created first, offset
pagination). The slice is then annotated with the viewer's likes and stably
re-sorted by engagement score, so equal scores keep their recency order.
Ranking never crosses page boundaries: a popular older entry on page 2 stays
on page 2.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.feed.scoring import DEFAULT_WEIGHTS, ScoreWeights, engagement_score
from watchhive.models import Entry, Like, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ScoredEntry:
    entry: Entry
    is_liked: bool
    score: float


@dataclass
class EntryPage:
    entries: list[ScoredEntry]
    # True iff storage returned a full page, so more may follow
    exact: bool


async def watched_catalog_ids(db: AsyncSession, user_id: str) -> set[int]:
    rows = await db.execute(select(Entry.catalog_id).where(Entry.user_id == user_id).distinct())
    return {r[0] for r in rows.all()}


async def liked_entry_ids(db: AsyncSession, user_id: str, entry_ids: Iterable[str]) -> set[str]:
    ids = list(entry_ids)
    if not ids:
        return set()
    rows = await db.execute(
        select(Like.entry_id).where(Like.user_id == user_id, Like.entry_id.in_(ids))
    )
    return {r[0] for r in rows.all()}


class EntryFeedSource:
    def __init__(
        self,
        db: AsyncSession,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = db
        self._weights = weights
        self._clock = clock

    async def page(
        self,
        viewer_id: str,
        relevant_user_ids: set[str],
        page: int,
        page_size: int,
    ) -> EntryPage:
        offset = (page - 1) * page_size
        rows = await self._db.execute(
            select(Entry)
            .where(Entry.user_id.in_(relevant_user_ids))
            .order_by(Entry.created_at.desc(), Entry.entry_id.desc())
            .offset(offset)
            .limit(page_size)
        )
        entries = list(rows.unique().scalars().all())

        liked = await liked_entry_ids(self._db, viewer_id, (e.entry_id for e in entries))
        now = self._clock()
        scored = [
            ScoredEntry(
                entry=e,
                is_liked=e.entry_id in liked,
                score=engagement_score(
                    e.like_count, e.comment_count, e.created_at, now, self._weights
                ),
            )
            for e in entries
        ]
        scored.sort(key=lambda s: s.score, reverse=True)

        logger.debug(
            "Entry page %d for %s: %d entries from %d users",
            page, viewer_id, len(scored), len(relevant_user_ids),
        )
        return EntryPage(entries=scored, exact=len(entries) == page_size)
