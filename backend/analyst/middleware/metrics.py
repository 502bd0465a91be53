"""
Prometheus Metrics Middleware

Provides request/response and analysis-pipeline metrics:
- HTTP request latency and count by endpoint and status
- Active request gauge
- Cache hit/miss rates per cache layer
- Embedding latency per completion provider
- Opportunity scoring latency
- Fallback activations per component (semantic scorer, query templates)

Usage:
    from analyst.middleware.metrics import setup_metrics

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

# ==================== Prometheus Metrics ====================

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

CACHE_HITS = Counter(
    "cache_hits_total",
    "Total cache hits",
    ["layer"]  # query, score, embedding
)

CACHE_MISSES = Counter(
    "cache_misses_total",
    "Total cache misses",
    ["layer"]
)

EMBEDDING_LATENCY = Histogram(
    "embedding_generation_seconds",
    "Time to generate embeddings",
    ["provider"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0]
)

SCORING_LATENCY = Histogram(
    "opportunity_scoring_seconds",
    "Time to score one opportunity against a profile",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

FALLBACKS = Counter(
    "analysis_fallbacks_total",
    "Number of times a component degraded to its local fallback",
    ["component"]
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for Prometheus metrics collection.

    Records:
    - Request latency
    - Request count by status code
    - Active request count
    """

    def __init__(self, app: FastAPI, app_name: str = "analyst"):
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

        try:
            response = await call_next(request)
            status = str(response.status_code)
        except Exception as e:
            status = "500"
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

        Uses the route pattern instead of the raw path to keep label
        cardinality bounded. Entries of ``app.routes`` without a ``path``
        (mounted or included routers) are skipped.
        """
        route = request.scope.get("route")
        path = getattr(route, "path", None)
        if path:
            return path

        for route in request.app.routes:
            path = getattr(route, "path", None)
            if not path:
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
    app.add_middleware(PrometheusMiddleware, app_name="analyst")
    app.add_route("/metrics", metrics_endpoint, methods=["GET"])

    logger.info("Prometheus metrics configured")


# ==================== Helper Functions ====================

def record_cache_hit(layer: str) -> None:
    """Record a cache hit for the specified layer."""
    CACHE_HITS.labels(layer=layer).inc()


def record_cache_miss(layer: str) -> None:
    """Record a cache miss for the specified layer."""
    CACHE_MISSES.labels(layer=layer).inc()


def record_embedding_latency(provider: str, duration: float) -> None:
    """Record embedding generation latency."""
    EMBEDDING_LATENCY.labels(provider=provider).observe(duration)


def record_scoring_latency(duration: float) -> None:
    """Record single-opportunity scoring latency."""
    SCORING_LATENCY.observe(duration)


def record_fallback(component: str) -> None:
    """Record a fallback activation for a component."""
    FALLBACKS.labels(component=component).inc()
