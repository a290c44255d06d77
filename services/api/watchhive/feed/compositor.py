"""
Feed compositor — builds one page of GET /feed.

  Stage 1 │ Social graph    — viewer + followed user ids
  Stage 2 │ Entries         — recency page, ranked by engagement inside the page
  Stage 3 │ Suggestions     — catalog titles; catalog outages degrade to none
  Stage 4 │ Watched set     — every catalog id the viewer has logged
  Stage 5 │ Mix
          │  • no entries on page 1 → up to 15 suggestions only
          │  • otherwise every entry, plus one suggestion after each 3rd entry,
          │    cycling through the suggestion list from offset (page-1)*2

Each call is computed from scratch; nothing is carried between pages, so a
suggestion may reappear on a later page. `has_more` is true iff the entry
page came back full.
"""
import logging
from typing import Awaitable, Callable, Optional

from opentelemetry import trace

from watchhive.config import settings
from watchhive.errors import UpstreamUnavailableError
from watchhive.feed.entry_source import EntryFeedSource, ScoredEntry
from watchhive.feed.social_graph import SocialGraphReader
from watchhive.feed.suggestions import Suggestion, SuggestionSource
from watchhive.models import utcnow
from watchhive.schemas import (
    EntryFeedItem,
    EntryResponse,
    FeedResponse,
    SuggestionFeedItem,
)
from watchhive.telemetry import FEED_ITEMS_TOTAL, SUGGESTION_FALLBACK_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Consecutive pages start this many suggestions further along the list
SUGGESTION_PAGE_STRIDE = 2


class FeedCompositor:
    def __init__(
        self,
        graph: SocialGraphReader,
        entries: EntryFeedSource,
        suggestions: SuggestionSource,
        watched_ids: Callable[[str], Awaitable[set[int]]],
        interval: Optional[int] = None,
        empty_feed_limit: Optional[int] = None,
    ) -> None:
        self._graph = graph
        self._entries = entries
        self._suggestions = suggestions
        self._watched_ids = watched_ids
        self._interval = interval or settings.suggestion_interval
        self._empty_feed_limit = empty_feed_limit or settings.empty_feed_suggestions

    async def get_feed_page(
        self, viewer_id: str, page: int = 1, page_size: Optional[int] = None
    ) -> FeedResponse:
        page_size = page_size or settings.feed_page_size

        with tracer.start_as_current_span("compose_feed") as span:
            span.set_attribute("user.id", viewer_id)
            span.set_attribute("feed.page", page)

            with tracer.start_as_current_span("stage1_social_graph"):
                relevant_ids = await self._graph.relevant_user_ids(viewer_id)

            with tracer.start_as_current_span("stage2_entries"):
                entry_page = await self._entries.page(viewer_id, relevant_ids, page, page_size)

            with tracer.start_as_current_span("stage3_suggestions"):
                suggestions = await self._fetch_suggestions(viewer_id)

            with tracer.start_as_current_span("stage4_watched"):
                watched = await self._watched_ids(viewer_id)

            with tracer.start_as_current_span("stage5_mix"):
                if not entry_page.entries and page == 1:
                    items = self._suggestions_only(suggestions, watched)
                else:
                    items = self._interleave(entry_page.entries, suggestions, watched, page)

            has_more = entry_page.exact
            span.set_attribute("feed.entries", len(entry_page.entries))
            span.set_attribute("feed.items", len(items))

        entry_count = len(entry_page.entries)
        FEED_ITEMS_TOTAL.labels(kind="entry").inc(entry_count)
        FEED_ITEMS_TOTAL.labels(kind="suggestion").inc(len(items) - entry_count)

        return FeedResponse(
            items=items,
            next_page=page + 1 if has_more else None,
            has_more=has_more,
        )

    async def _fetch_suggestions(self, viewer_id: str) -> list[Suggestion]:
        try:
            return await self._suggestions.candidates(viewer_id)
        except UpstreamUnavailableError as exc:
            logger.warning("Serving feed for %s without suggestions: %s", viewer_id, exc)
            SUGGESTION_FALLBACK_TOTAL.labels(stage="empty").inc()
            return []

    def _suggestions_only(
        self, suggestions: list[Suggestion], watched: set[int]
    ) -> list[SuggestionFeedItem]:
        now = utcnow()
        return [
            SuggestionFeedItem(
                id=f"suggestion-{s.item.id}",
                timestamp=now,
                candidate=s.item,
                reason=s.reason,
                is_watched=s.item.id in watched,
            )
            for s in suggestions[: self._empty_feed_limit]
        ]

    def _interleave(
        self,
        entries: list[ScoredEntry],
        suggestions: list[Suggestion],
        watched: set[int],
        page: int,
    ) -> list:
        items: list = []
        cursor = (page - 1) * SUGGESTION_PAGE_STRIDE

        for i, scored in enumerate(entries):
            entry = scored.entry
            items.append(
                EntryFeedItem(
                    id=entry.entry_id,
                    timestamp=entry.created_at,
                    entry=EntryResponse.from_entry(entry),
                    is_liked=scored.is_liked,
                    is_watched=entry.catalog_id in watched,
                    score=scored.score,
                )
            )

            if (i + 1) % self._interval == 0 and suggestions:
                s = suggestions[cursor % len(suggestions)]
                items.append(
                    SuggestionFeedItem(
                        id=f"suggestion-{s.item.id}-{page}-{i}",
                        timestamp=entry.created_at,
                        candidate=s.item,
                        reason=s.reason,
                        is_watched=s.item.id in watched,
                    )
                )
                cursor += 1

        return items
