import json
import unittest

import httpx
from redis.exceptions import ConnectionError as RedisConnectionError

from watchhive.clients.catalog_client import CatalogClient
from watchhive.clients.redis_client import RedisCatalogCache
from watchhive.config import settings
from watchhive.errors import UpstreamUnavailableError
from watchhive.models import EntryKind


def _results(*ids, **extra):
    return {"results": [{"id": i, "title": f"Movie {i}", **extra} for i in ids]}


class _MemoryCache:
    def __init__(self, preset=None) -> None:
        self.store = dict(preset or {})
        self.writes = []

    async def get_json(self, key):
        return self.store.get(key)

    async def set_json(self, key, value, ttl):
        self.writes.append((key, ttl))
        self.store[key] = value


class _StringRedis:
    """The slice of redis.asyncio.Redis the catalog cache touches."""

    def __init__(self, preset=None, fail: bool = False) -> None:
        self.store = dict(preset or {})
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise RedisConnectionError("redis down")
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self.fail:
            raise RedisConnectionError("redis down")
        self.store[key] = value


class TestCatalogClient(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.requests: list[httpx.Request] = []
        self.sleeps: list[float] = []
        self.responses: list = []

    def _handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        return httpx.Response(status, json=body)

    async def _sleep(self, delay: float) -> None:
        self.sleeps.append(delay)

    async def _client(self, **kwargs) -> CatalogClient:
        options = {
            "base_url": "https://tmdb.test/3",
            "api_key": "k-123",
            "max_attempts": 3,
            "backoff_base_s": 1.0,
            "backoff_max_s": 4.0,
            "transport": httpx.MockTransport(self._handler),
            "sleep": self._sleep,
        }
        options.update(kwargs)
        client = CatalogClient(**options)
        await client.start()
        self.addAsyncCleanup(client.stop)
        return client

    async def test_similar_uses_movie_recommendations_and_api_key(self) -> None:
        self.responses = [(200, _results(10, 11))]
        client = await self._client()

        items = await client.search_similar(603, EntryKind.MOVIE)

        self.assertEqual([i.id for i in items], [10, 11])
        self.assertEqual(items[0].media_type, "movie")
        self.assertEqual(self.requests[0].url.path, "/3/movie/603/recommendations")
        self.assertEqual(self.requests[0].url.params["api_key"], "k-123")
        self.assertEqual(self.requests[0].url.params["page"], "1")

    async def test_episode_and_show_use_tv_recommendations(self) -> None:
        self.responses = [(200, {"results": [{"id": 7, "name": "Some Show", "first_air_date": "2011-04-17"}]})]
        client = await self._client()

        for kind in (EntryKind.EPISODE, EntryKind.TV_SHOW):
            items = await client.search_similar(1399, kind)
            self.assertEqual(items[0].title, "Some Show")
            self.assertEqual(items[0].release_date, "2011-04-17")
            self.assertEqual(items[0].media_type, "tv")

        self.assertEqual(
            [r.url.path for r in self.requests],
            ["/3/tv/1399/recommendations", "/3/tv/1399/recommendations"],
        )

    async def test_trending_skips_people(self) -> None:
        self.responses = [
            (
                200,
                {
                    "results": [
                        {"id": 1, "title": "Film", "media_type": "movie"},
                        {"id": 2, "name": "Actor", "media_type": "person"},
                        {"id": 3, "name": "Series", "media_type": "tv"},
                        {"title": "No id"},
                    ]
                },
            )
        ]
        client = await self._client()

        items = await client.trending("all", "week")

        self.assertEqual([(i.id, i.media_type) for i in items], [(1, "movie"), (3, "tv")])
        self.assertEqual(self.requests[0].url.path, "/3/trending/all/week")

    async def test_retries_server_errors_with_backoff(self) -> None:
        self.responses = [(503, {}), (502, {}), (200, _results(1))]
        client = await self._client()

        items = await client.trending()

        self.assertEqual([i.id for i in items], [1])
        self.assertEqual(len(self.requests), 3)
        self.assertEqual(self.sleeps, [1.0, 2.0])

    async def test_rate_limit_is_retried(self) -> None:
        self.responses = [(429, {}), (200, _results(5))]
        client = await self._client()

        items = await client.trending()

        self.assertEqual([i.id for i in items], [5])
        self.assertEqual(self.sleeps, [1.0])

    async def test_transport_error_is_retried(self) -> None:
        self.responses = [httpx.ConnectError("connection refused"), (200, _results(9))]
        client = await self._client()

        items = await client.search_similar(1, EntryKind.MOVIE)

        self.assertEqual([i.id for i in items], [9])
        self.assertEqual(len(self.requests), 2)

    async def test_gives_up_after_max_attempts(self) -> None:
        self.responses = [(500, {})]
        client = await self._client()

        with self.assertRaises(UpstreamUnavailableError) as ctx:
            await client.trending()

        self.assertEqual(len(self.requests), 3)
        self.assertEqual(self.sleeps, [1.0, 2.0])
        self.assertIn("after 3 attempts", ctx.exception.message)

    async def test_backoff_is_capped(self) -> None:
        self.responses = [(500, {})]
        client = await self._client(max_attempts=5)

        with self.assertRaises(UpstreamUnavailableError):
            await client.trending()

        self.assertEqual(self.sleeps, [1.0, 2.0, 4.0, 4.0])

    async def test_client_errors_are_not_retried(self) -> None:
        self.responses = [(404, {"status_message": "not found"})]
        client = await self._client()

        with self.assertRaises(UpstreamUnavailableError):
            await client.search_similar(999999, EntryKind.MOVIE)

        self.assertEqual(len(self.requests), 1)
        self.assertEqual(self.sleeps, [])

    async def test_trending_served_from_cache(self) -> None:
        cache = _MemoryCache({"trending:all:week": [{"id": 42, "title": "Cached", "media_type": "movie"}]})
        self.responses = [(500, {})]
        client = await self._client(cache=cache)

        items = await client.trending()

        self.assertEqual([i.id for i in items], [42])
        self.assertEqual(self.requests, [])

    async def test_trending_miss_fills_cache(self) -> None:
        cache = _MemoryCache()
        self.responses = [(200, _results(1, 2))]
        client = await self._client(cache=cache)

        await client.trending()
        again = await client.trending()

        self.assertEqual([i.id for i in again], [1, 2])
        self.assertEqual(len(self.requests), 1)
        self.assertEqual(cache.writes, [("trending:all:week", settings.catalog_trending_ttl)])

    async def test_unreadable_cache_entry_falls_through_to_catalog(self) -> None:
        redis = _StringRedis({"catalog:trending:all:week": "{not json"})
        self.responses = [(200, _results(7, 8))]
        client = await self._client(cache=RedisCatalogCache(redis))

        items = await client.trending()

        self.assertEqual([i.id for i in items], [7, 8])
        self.assertEqual(len(self.requests), 1)
        self.assertEqual(json.loads(redis.store["catalog:trending:all:week"])[0]["id"], 7)

    async def test_cache_outage_falls_through_to_catalog(self) -> None:
        redis = _StringRedis(fail=True)
        self.responses = [(200, _results(3))]
        client = await self._client(cache=RedisCatalogCache(redis))

        items = await client.trending()

        self.assertEqual([i.id for i in items], [3])

    async def test_requires_start(self) -> None:
        client = CatalogClient(base_url="https://tmdb.test/3", api_key="k")
        with self.assertRaises(RuntimeError):
            await client.trending()
