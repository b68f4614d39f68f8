"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics: feed_latency_seconds, interactions_recorded_total, …

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram

from connection_api.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
FEED_LATENCY = Histogram(
    "feed_latency_seconds",
    "End-to-end latency of GET /api/recommendations/feed",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

FEED_CANDIDATES_TOTAL = Counter(
    "feed_candidates_total",
    "Candidate items considered per feed request",
    ["kind"],  # 'microblog' or 'community'
)

INTERACTIONS_RECORDED_TOTAL = Counter(
    "interactions_recorded_total",
    "Interaction events appended to the interaction log",
    ["content_type", "interaction_type"],
)

RECOMMENDATION_ERRORS_TOTAL = Counter(
    "recommendation_errors_total",
    "Unexpected failures in the recommendation endpoints",
    ["operation"],  # 'feed' or 'interaction'
)

NOTIFICATION_FAILURES_TOTAL = Counter(
    "notification_failures_total",
    "Notifications that could not be delivered",
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    if not settings.otel_enabled:
        logger.info("OTel tracing disabled")
        return

    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    try:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(
            "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
        )
    except Exception as exc:
        logger.warning("Could not connect to OTLP exporter: %s, traces disabled", exc)

    trace.set_tracer_provider(provider)

    SQLAlchemyInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    if settings.otel_enabled:
        FastAPIInstrumentor.instrument_app(app)
