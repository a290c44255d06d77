"""
TMDB catalog client.

Only the two reads the feed needs are exposed:

  search_similar(catalog_id, kind) → GET /{movie|tv}/{id}/recommendations
  trending(media_kind, window)     → GET /trending/{media_kind}/{window}

Both are idempotent, so transport errors, 5xx and 429 responses are retried
with exponential backoff (1s, 2s, ... capped at tmdb_backoff_max_s) up to
tmdb_max_attempts. Anything else, or running out of attempts, raises
UpstreamUnavailableError and the caller decides how to degrade.

One instance is created in the app lifespan and handed to request handlers
through a dependency; nothing here is module-global.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

import httpx

from watchhive.config import settings
from watchhive.errors import UpstreamUnavailableError
from watchhive.models import EntryKind
from watchhive.schemas import CatalogItem
from watchhive.telemetry import CATALOG_ERRORS_TOTAL, CATALOG_RETRIES_TOTAL

logger = logging.getLogger(__name__)


class CatalogCache(Protocol):
    async def get_json(self, key: str) -> Optional[list]: ...

    async def set_json(self, key: str, value: list, ttl: int) -> None: ...


def _catalog_media(kind: EntryKind) -> str:
    # Episodes are logged against their show, so they share TV recommendations
    return "movie" if kind == EntryKind.MOVIE else "tv"


def _to_items(results: list[dict[str, Any]], media_type: Optional[str]) -> list[CatalogItem]:
    items: list[CatalogItem] = []
    for raw in results:
        if raw.get("media_type") == "person" or "id" not in raw:
            continue
        items.append(CatalogItem.from_tmdb(raw, media_type))
    return items


class CatalogClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_s: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_base_s: Optional[float] = None,
        backoff_max_s: Optional[float] = None,
        cache: Optional[CatalogCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._base_url = base_url or settings.tmdb_base_url
        self._api_key = api_key if api_key is not None else settings.tmdb_api_key
        self._timeout_s = timeout_s or settings.tmdb_timeout_s
        self._max_attempts = max(1, max_attempts or settings.tmdb_max_attempts)
        self._backoff_base_s = backoff_base_s if backoff_base_s is not None else settings.tmdb_backoff_base_s
        self._backoff_max_s = backoff_max_s if backoff_max_s is not None else settings.tmdb_backoff_max_s
        self._cache = cache
        self._transport = transport
        self._sleep = sleep
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_s,
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def search_similar(
        self, catalog_id: int, kind: EntryKind, page: int = 1
    ) -> list[CatalogItem]:
        """Titles TMDB recommends for someone who watched `catalog_id`."""
        media = _catalog_media(kind)
        results = await self._get_results(
            f"/{media}/{catalog_id}/recommendations",
            {"page": page},
            endpoint=f"{media}_recommendations",
        )
        return _to_items(results, media)

    async def trending(self, media_kind: str = "all", window: str = "week") -> list[CatalogItem]:
        """This window's trending titles; served from cache when one is configured."""
        media_type = None if media_kind == "all" else media_kind
        cache_key = f"trending:{media_kind}:{window}"

        if self._cache is not None:
            cached = await self._cache.get_json(cache_key)
            if cached is not None:
                return _to_items(cached, media_type)

        results = await self._get_results(
            f"/trending/{media_kind}/{window}", {}, endpoint="trending"
        )
        if self._cache is not None and results:
            await self._cache.set_json(cache_key, results, settings.catalog_trending_ttl)
        return _to_items(results, media_type)

    async def _get_results(
        self, path: str, params: dict[str, Any], endpoint: str
    ) -> list[dict[str, Any]]:
        if self._http is None:
            raise RuntimeError("CatalogClient not started — call start() at startup")

        query = {"api_key": self._api_key, **params}
        delay = self._backoff_base_s
        failure = "no attempt made"

        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = await self._http.get(path, params=query)
            except httpx.TransportError as exc:
                failure = f"{type(exc).__name__}: {exc}"
            else:
                if resp.status_code == 429 or resp.status_code >= 500:
                    failure = f"HTTP {resp.status_code}"
                elif resp.is_error:
                    CATALOG_ERRORS_TOTAL.labels(endpoint=endpoint).inc()
                    raise UpstreamUnavailableError(
                        f"Catalog {endpoint} answered HTTP {resp.status_code}"
                    )
                else:
                    try:
                        return list(resp.json().get("results") or [])
                    except ValueError as exc:
                        CATALOG_ERRORS_TOTAL.labels(endpoint=endpoint).inc()
                        raise UpstreamUnavailableError(
                            f"Catalog {endpoint} returned an unreadable body"
                        ) from exc

            if attempt < self._max_attempts:
                logger.warning(
                    "Catalog %s attempt %d/%d failed (%s) — retrying in %.1fs",
                    endpoint, attempt, self._max_attempts, failure, delay,
                )
                CATALOG_RETRIES_TOTAL.inc()
                await self._sleep(delay)
                delay = min(delay * 2, self._backoff_max_s)

        CATALOG_ERRORS_TOTAL.labels(endpoint=endpoint).inc()
        raise UpstreamUnavailableError(
            f"Catalog {endpoint} unavailable after {self._max_attempts} attempts: {failure}"
        )
