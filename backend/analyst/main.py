"""
Artist Opportunity Analyst API - Main Application Entry Point

This module initializes the FastAPI application with:
- Logging configured from settings
- Analyst service construction and lifecycle (startup/shutdown)
- Prometheus metrics middleware and /metrics endpoint
- API router registration

Architecture:
    FastAPI App
    ├── Lifespan Management (analyst service initialize/shutdown)
    ├── Prometheus Middleware (+ /metrics)
    └── API Router
        └── /api/analysis
            ├── POST /queries      - Generate search queries for a profile
            ├── POST /score        - Score one opportunity
            ├── POST /score/batch  - Score many opportunities
            ├── GET|PATCH /weights - Read or update scoring weights
            └── GET /health        - Component health
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from analyst.api import api_router
from analyst.config import get_settings
from analyst.middleware.metrics import setup_metrics
from analyst.services.analyst import AnalystService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle events.

    Startup:
        1. Build the analyst service from settings (provider, cache backend)
        2. Initialize query generation and relevance scoring

    Shutdown:
        1. Shut the service down and close the cache backend

    Yields:
        Control to the application during its runtime
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    service = AnalystService.from_settings(settings)
    await service.initialize()
    app.state.analyst = service
    yield
    await service.shutdown()


app = FastAPI(
    title="Artist Opportunity Analyst API",
    description="Profile analysis, search query generation and opportunity relevance scoring",
    version="0.1.0",
    lifespan=lifespan,
)

setup_metrics(app)
app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
