#!/usr/bin/env python3
"""
FastAPI Application Entry Point

HTTP surface of the ad fatigue service: cache administration, stateless
scoring and cached per-account assessments.

The ad platform client is not part of this package. Deployments pass one
to create_app(origin_fetcher=...); without it the assessment endpoint
answers 503 while everything else works.

Author: System Architect
Date: 2025-12-12
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adfatigue.application.api.middleware import setup_middleware
from adfatigue.application.api.routes import admin_router, cache_router, fatigue_router, health_router
from adfatigue.core.config.constants import HEADER_REQUEST_ID
from adfatigue.core.config.settings import get_settings
from adfatigue.core.logging.logger import get_logger, setup_logging
from adfatigue.infrastructure.cache.cache_orchestrator import (
    close_cache_orchestrator,
    init_cache_orchestrator,
)
from adfatigue.scoring.fatigue_scorer import FatigueScorer
from adfatigue.services.assessment import FatigueAssessmentService, MetricsFetcher

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    STAGE-0: Logging, cache tiers (Redis optional), scorer and assessment
    service are created once and stored on app.state for dependencies.py.
    """
    settings = get_settings()
    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting ad fatigue service",
        stage="0",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    try:
        orchestrator = await init_cache_orchestrator()
        scorer = FatigueScorer()

        app.state.orchestrator = orchestrator
        app.state.scorer = scorer
        app.state.assessment_service = FatigueAssessmentService(orchestrator, scorer=scorer)
        logger.info(
            "Application startup complete",
            stage="0",
            persistent_tier=orchestrator.persistent is not None,
            origin_fetcher=getattr(app.state, "origin_fetcher", None) is not None,
        )

        yield

    finally:
        logger.info("Shutting down application", stage="0")
        await close_cache_orchestrator()
        logger.info("Application shutdown complete", stage="0")


# ============================================================================
# Application Factory
# ============================================================================


def create_app(origin_fetcher: MetricsFetcher | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        origin_fetcher: Ad platform client used on cache misses

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Multi-tier cached ad fatigue scoring",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    if origin_fetcher is not None:
        app.state.origin_fetcher = origin_fetcher

    setup_middleware(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_REQUEST_ID],
    )

    base_path = settings.app.API_BASE_PATH
    app.include_router(health_router, prefix=base_path)
    app.include_router(cache_router, prefix=base_path)
    app.include_router(fatigue_router, prefix=base_path)
    app.include_router(admin_router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": f"{base_path}/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "adfatigue.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
