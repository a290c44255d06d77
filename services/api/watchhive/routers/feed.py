"""
Feed retrieval endpoint — GET /feed?page=<n>&limit=<n>

Mixes the caller's and their followees' entries with catalog suggestions.
See watchhive.feed.compositor for the mixing policy.
"""
import logging
import time

from fastapi import APIRouter, Depends, Query

from watchhive.auth import get_current_user_id
from watchhive.config import settings
from watchhive.dependencies import get_feed_compositor
from watchhive.feed.compositor import FeedCompositor
from watchhive.schemas import FeedResponse
from watchhive.telemetry import FEED_LATENCY

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=FeedResponse)
async def get_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.feed_page_size, ge=1, le=settings.feed_max_page_size),
    user_id: str = Depends(get_current_user_id),
    compositor: FeedCompositor = Depends(get_feed_compositor),
):
    start_time = time.time()

    feed = await compositor.get_feed_page(user_id, page=page, page_size=limit)

    latency = time.time() - start_time
    FEED_LATENCY.observe(latency)
    logger.info(
        "Feed page %d for %s: %d items (hasMore=%s) in %.1fms",
        page, user_id, len(feed.items), feed.has_more, latency * 1000,
    )
    return feed
