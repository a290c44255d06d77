"""
Suggestion source — catalog titles to splice into the feed.

  1. Find the viewer's most recently *watched* entry.
  2. If there is one, ask the catalog for recommendations similar to it
     ("Because you watched <title>").
  3. Always ask for this week's trending titles ("Trending this week").
  4. Keep the first 10 of each, drop repeated titles, shuffle.

If any of that fails the source falls back to trending only ("Trending Now").
When the fallback fails too, UpstreamUnavailableError reaches the caller,
which decides whether to serve the feed without suggestions.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.clients.catalog_client import CatalogClient
from watchhive.config import settings
from watchhive.errors import UpstreamUnavailableError
from watchhive.models import Entry
from watchhive.schemas import CatalogItem
from watchhive.telemetry import SUGGESTION_FALLBACK_TOTAL

logger = logging.getLogger(__name__)

REASON_TRENDING_WEEK = "Trending this week"
REASON_TRENDING_NOW = "Trending Now"


def because_you_watched(title: str) -> str:
    return f"Because you watched {title}"


@dataclass
class Suggestion:
    item: CatalogItem
    reason: str


async def latest_watched_entry(db: AsyncSession, user_id: str) -> Optional[Entry]:
    rows = await db.execute(
        select(Entry)
        .where(Entry.user_id == user_id)
        .order_by(Entry.watched_at.desc(), Entry.created_at.desc(), Entry.entry_id.desc())
        .limit(1)
    )
    return rows.unique().scalars().first()


async def _gather_or_cancel(*calls: Awaitable) -> list:
    """Run catalog calls concurrently; the first failure cancels the rest."""
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _dedupe(suggestions: list[Suggestion]) -> list[Suggestion]:
    seen: set[int] = set()
    unique: list[Suggestion] = []
    for s in suggestions:
        if s.item.id in seen:
            continue
        seen.add(s.item.id)
        unique.append(s)
    return unique


class SuggestionSource:
    def __init__(
        self,
        catalog: CatalogClient,
        latest_entry: Callable[[str], Awaitable[Optional[Entry]]],
        rng: Optional[random.Random] = None,
        cap: Optional[int] = None,
    ) -> None:
        self._catalog = catalog
        self._latest_entry = latest_entry
        self._rng = rng or random.Random()
        self._cap = cap or settings.suggestion_source_cap

    async def candidates(self, viewer_id: str) -> list[Suggestion]:
        try:
            return await self._contextual_and_trending(viewer_id)
        except Exception as exc:
            logger.warning(
                "Suggestion generation failed for %s (%s) — falling back to trending", viewer_id, exc
            )
            SUGGESTION_FALLBACK_TOTAL.labels(stage="trending").inc()

        try:
            trending = await self._catalog.trending("all", "week")
        except UpstreamUnavailableError:
            raise
        except Exception as exc:
            raise UpstreamUnavailableError(f"Trending fallback failed: {exc}") from exc
        return [Suggestion(item, REASON_TRENDING_NOW) for item in trending]

    async def _contextual_and_trending(self, viewer_id: str) -> list[Suggestion]:
        last = await self._latest_entry(viewer_id)

        if last is not None:
            similar, trending = await _gather_or_cancel(
                self._catalog.search_similar(last.catalog_id, last.kind),
                self._catalog.trending("all", "week"),
            )
            contextual = [Suggestion(item, because_you_watched(last.title)) for item in similar]
        else:
            trending = await self._catalog.trending("all", "week")
            contextual = []

        weekly = [Suggestion(item, REASON_TRENDING_WEEK) for item in trending]
        suggestions = _dedupe(contextual[: self._cap] + weekly[: self._cap])
        self._rng.shuffle(suggestions)
        return suggestions
