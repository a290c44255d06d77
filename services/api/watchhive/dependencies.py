"""
FastAPI dependency providers for request-scoped services.

The catalog client lives on `app.state` (created in the lifespan); everything
else is built per request around the request's DB session.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.clients.catalog_client import CatalogClient
from watchhive.database import get_db
from watchhive.feed.compositor import FeedCompositor
from watchhive.feed.entry_source import EntryFeedSource, watched_catalog_ids
from watchhive.feed.scoring import ScoreWeights
from watchhive.feed.social_graph import SocialGraphReader
from watchhive.feed.suggestions import SuggestionSource, latest_watched_entry


def get_catalog_client(request: Request) -> CatalogClient:
    catalog = getattr(request.app.state, "catalog_client", None)
    if catalog is None:
        raise RuntimeError("Catalog client not initialised — app lifespan did not run")
    return catalog


def get_feed_compositor(
    db: AsyncSession = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> FeedCompositor:
    async def latest_entry(user_id: str):
        return await latest_watched_entry(db, user_id)

    async def watched_ids(user_id: str) -> set[int]:
        return await watched_catalog_ids(db, user_id)

    return FeedCompositor(
        graph=SocialGraphReader(db),
        entries=EntryFeedSource(db, weights=ScoreWeights.from_settings()),
        suggestions=SuggestionSource(catalog, latest_entry),
        watched_ids=watched_ids,
    )
