"""
WatchHive API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Connect to Redis (catalog response cache; optional)
  4. Start the TMDB catalog client
  5. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import make_asgi_app
from redis.exceptions import RedisError

from watchhive.clients import redis_client
from watchhive.clients.catalog_client import CatalogClient
from watchhive.config import settings
from watchhive.database import init_db
from watchhive.errors import register_exception_handlers
from watchhive.routers import entries, feed, follows, users
from watchhive.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


async def _catalog_cache():
    if not settings.catalog_cache_enabled:
        return None
    try:
        await redis_client.init_redis()
    except (RedisError, OSError) as exc:
        logger.warning("Redis unavailable (%s) — catalog responses will not be cached", exc)
        return None
    return redis_client.RedisCatalogCache(redis_client.get_redis())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting WatchHive API (env=%s)", settings.environment)

    await init_db()
    catalog_client = CatalogClient(cache=await _catalog_cache())
    await catalog_client.start()
    app.state.catalog_client = catalog_client

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await catalog_client.stop()
    await redis_client.close_redis()


app = FastAPI(
    title="WatchHive API",
    description=(
        "Social watch tracking: entries, follows and a feed mixing friends' "
        "activity with catalog suggestions."
    ),
    version=settings.service_version,
    lifespan=lifespan,
)

register_exception_handlers(app)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(follows.router, prefix="/follows", tags=["Follows"])
app.include_router(entries.router, prefix="/entries", tags=["Entries"])
app.include_router(feed.router, prefix="/feed", tags=["Feed"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Mounted at /metrics — scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name, "version": settings.service_version}
