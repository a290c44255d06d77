"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics: feed_latency_seconds, feed_items_total,
    suggestion_fallback_total, catalog_errors_total, catalog_retries_total

Metrics are module-level and exported at /metrics. Tracing is configured from
main before the app is built; the compositor opens one span per stage.
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import Counter, Histogram

from watchhive.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
FEED_LATENCY = Histogram(
    "feed_latency_seconds",
    "End-to-end latency of GET /feed",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

FEED_ITEMS_TOTAL = Counter(
    "feed_items_total",
    "Feed items served, by kind",
    ["kind"],  # 'entry' or 'suggestion'
)

SUGGESTION_FALLBACK_TOTAL = Counter(
    "suggestion_fallback_total",
    "Times suggestion generation degraded",
    ["stage"],  # 'trending' (fell back to trending-only) or 'empty' (no suggestions)
)

CATALOG_ERRORS_TOTAL = Counter(
    "catalog_errors_total",
    "Catalog (TMDB) calls that failed after retries",
    ["endpoint"],
)

CATALOG_RETRIES_TOTAL = Counter(
    "catalog_retries_total",
    "Catalog (TMDB) calls retried after a transient failure",
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
_tracing_configured = False


def _instrument_clients() -> None:
    # Outbound calls the feed makes: TMDB over httpx, the catalog cache, the DB
    HTTPXClientInstrumentor().instrument()
    RedisInstrumentor().instrument()
    SQLAlchemyInstrumentor().instrument()


def setup_tracing() -> None:
    """Install the global TracerProvider (OTLP → Jaeger) and client instrumentation.

    Safe to call more than once; only the first call has an effect. With
    OTEL_ENABLED=false the no-op provider stays in place and compositor spans
    cost nothing.
    """
    global _tracing_configured
    if _tracing_configured:
        return
    _tracing_configured = True

    if not settings.otel_enabled:
        logger.info("OTel tracing disabled")
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.service_name,
                "service.version": settings.service_version,
                "deployment.environment": settings.environment,
            }
        ),
        sampler=ParentBased(TraceIdRatioBased(settings.otel_sample_ratio)),
    )

    try:
        exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)
    except Exception as exc:
        logger.warning("OTLP exporter unavailable (%s), spans will not be exported", exc)
    else:
        provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info(
            "OTel tracing → %s (sample ratio %.2f)",
            settings.otel_exporter_otlp_endpoint, settings.otel_sample_ratio,
        )

    trace.set_tracer_provider(provider)
    _instrument_clients()


def instrument_app(app) -> None:  # noqa: ANN001
    """Add FastAPI request spans; call once the app and its routes exist."""
    if settings.otel_enabled:
        FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")
