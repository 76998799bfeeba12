"""PromoFinder Backend -- FastAPI Application Entry Point."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promofinder import __version__
from promofinder.api.v1.router import api_v1_router
from promofinder.config import settings
from promofinder.core.exceptions import AggregationConfigError
from promofinder.core.logging import configure_logging
from promofinder.schemas import ErrorDetail, ErrorResponse
from promofinder.services.aggregator import get_aggregator
from promofinder.services.cache_service import get_cache_service
from promofinder.services.scheduler import RefreshScheduler
from promofinder.sources.register_sources import register_all_sources

configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
logger = structlog.get_logger(__name__)

# Global scheduler instance
scheduler: Optional[RefreshScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    logger.info(
        "app_starting",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
    )

    register_all_sources()
    aggregator = get_aggregator()
    if not aggregator.sources:
        logger.warning("no_sources_configured", enabled=settings.get_enabled_sources())

    cache = get_cache_service()
    if await cache.health_check():
        logger.info("redis_connected")
    else:
        logger.warning("redis_unavailable", detail="operating without caching")

    # Refresh scheduler (only in non-test environments)
    if settings.ENVIRONMENT != "test":
        scheduler = RefreshScheduler(aggregator, settings.REFRESH_INTERVAL_MINUTES)
        scheduler.start()
        scheduler.load_queries(settings.get_refresh_queries())
    else:
        logger.info("scheduler_disabled", reason="test_environment")

    yield

    logger.info("app_stopping")

    if scheduler:
        scheduler.stop()
        scheduler = None

    await cache.close()


app = FastAPI(
    title="PromoFinder API",
    description="Validated discount offers aggregated from product APIs and scrapers",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AggregationConfigError)
async def aggregation_config_error_handler(request: Request, exc: AggregationConfigError):
    logger.error("aggregation_misconfigured", path=request.url.path, error=exc.message)
    body = ErrorResponse(error=ErrorDetail(code="no_sources", message=exc.message))
    return JSONResponse(status_code=503, content=body.model_dump())


app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "PromoFinder API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
