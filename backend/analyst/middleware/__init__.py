"""
Middleware Package

Contains FastAPI middleware for:
- Prometheus metrics collection
- Analysis pipeline instrumentation helpers
"""

from analyst.middleware.metrics import (
    PrometheusMiddleware,
    setup_metrics,
    REQUEST_LATENCY,
    REQUEST_COUNT,
    ACTIVE_REQUESTS,
    CACHE_HITS,
    CACHE_MISSES,
    FALLBACKS,
)

__all__ = [
    "PrometheusMiddleware",
    "setup_metrics",
    "REQUEST_LATENCY",
    "REQUEST_COUNT",
    "ACTIVE_REQUESTS",
    "CACHE_HITS",
    "CACHE_MISSES",
    "FALLBACKS",
]
