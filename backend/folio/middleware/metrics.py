"""
Prometheus Metrics Middleware

Provides request/response metrics for monitoring:
- HTTP request latency (p50, p95, p99)
- Request count by endpoint and status
- Active request gauge
- Search pass counts and latency
- Embedding and index build counters

Usage:
    from folio.middleware.metrics import PrometheusMiddleware, setup_metrics

    # In main.py
    app = FastAPI()
    setup_metrics(app)

Metrics Endpoint:
    GET /metrics - Prometheus-format metrics
"""

import time
import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CONTENT_TYPE_LATEST,
    generate_latest,
    REGISTRY,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

logger = logging.getLogger(__name__)

# ==================== HTTP Metrics ====================

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

ACTIVE_REQUESTS = Gauge(
    "http_requests_active",
    "Number of active HTTP requests",
    ["method", "endpoint"]
)

# ==================== Search Metrics ====================

SEARCH_QUERIES = Counter(
    "profile_search_queries_total",
    "Profile search queries by the pass that produced the result",
    ["search_pass", "mode"]  # lexical, hybrid, empty
)

SEARCH_LATENCY = Histogram(
    "profile_search_seconds",
    "End-to-end profile search latency",
    ["mode"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

EMBEDDING_LATENCY = Histogram(
    "embedding_generation_seconds",
    "Time to generate embeddings",
    ["provider"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0]
)

# ==================== Index Build Metrics ====================

EMBEDDINGS_GENERATED = Counter(
    "search_embeddings_generated_total",
    "Number of profile embeddings persisted"
)

SEARCH_INDEXES_BUILT = Counter(
    "search_text_indexes_built_total",
    "Number of profile search vectors persisted"
)

PERSISTENCE_FAILURES = Counter(
    "search_index_persistence_failures_total",
    "Per-user write failures during index builds",
    ["artifact"]  # embedding, search_vector
)

PENDING_BUILDS = Gauge(
    "search_build_pending_users",
    "Users waiting in the debounced build queue"
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for Prometheus metrics collection.

    Records:
    - Request latency
    - Request count by status code
    - Active request count
    """

    def __init__(self, app: FastAPI, app_name: str = "folio"):
        super().__init__(app)
        self.app_name = app_name

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        """Process request and record metrics."""
        endpoint = self._get_endpoint(request)
        method = request.method

        if endpoint == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()
        status = "500"

        try:
            response = await call_next(request)
            status = str(response.status_code)
        except Exception as e:
            logger.error(f"Request error: {e}")
            raise
        finally:
            duration = time.perf_counter() - start_time

            REQUEST_LATENCY.labels(
                method=method,
                endpoint=endpoint,
                status=status
            ).observe(duration)

            REQUEST_COUNT.labels(
                method=method,
                endpoint=endpoint,
                status=status
            ).inc()

            ACTIVE_REQUESTS.labels(
                method=method,
                endpoint=endpoint
            ).dec()

        return response

    def _get_endpoint(self, request: Request) -> str:
        """
        Get normalized endpoint path from request.

        Uses the route pattern (e.g. /api/profiles/{username}) instead of
        the actual path to avoid high cardinality.
        """
        for route in request.app.routes:
            path = getattr(route, "path", None)
            if path is None:
                continue
            match, _ = route.matches(request.scope)
            if match == Match.FULL:
                return path

        return request.url.path


def metrics_endpoint(request: Request) -> Response:
    """Endpoint handler for Prometheus metrics scraping."""
    return PlainTextResponse(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST
    )


def setup_metrics(app: FastAPI) -> None:
    """
    Configure Prometheus metrics for FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(PrometheusMiddleware, app_name="folio")
    app.add_route("/metrics", metrics_endpoint, methods=["GET"])

    logger.info("Prometheus metrics configured")


# ==================== Helper Functions ====================

def record_search(search_pass: str, mode: str, duration: float) -> None:
    """Record which pass answered a search and how long it took."""
    SEARCH_QUERIES.labels(search_pass=search_pass, mode=mode).inc()
    SEARCH_LATENCY.labels(mode=mode).observe(duration)


def record_embedding_latency(provider: str, duration: float) -> None:
    """Record embedding generation latency."""
    EMBEDDING_LATENCY.labels(provider=provider).observe(duration)


def record_embeddings_generated(count: int) -> None:
    EMBEDDINGS_GENERATED.inc(count)


def record_search_indexes_built(count: int) -> None:
    SEARCH_INDEXES_BUILT.inc(count)


def record_persistence_failure(artifact: str) -> None:
    PERSISTENCE_FAILURES.labels(artifact=artifact).inc()


def update_pending_builds(depth: int) -> None:
    """Update debounced build queue depth gauge."""
    PENDING_BUILDS.set(depth)
