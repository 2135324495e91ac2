"""
Middleware Package

Contains FastAPI middleware for:
- Prometheus metrics collection
- Request id propagation
"""

from folio.middleware.metrics import (
    PrometheusMiddleware,
    setup_metrics,
    REQUEST_LATENCY,
    REQUEST_COUNT,
    ACTIVE_REQUESTS,
)
from folio.middleware.request_context import RequestContextMiddleware

__all__ = [
    "PrometheusMiddleware",
    "RequestContextMiddleware",
    "setup_metrics",
    "REQUEST_LATENCY",
    "REQUEST_COUNT",
    "ACTIVE_REQUESTS",
]
