"""
FastAPI application for the Simorgh review scheduler.

Provides REST API for:
- Submitting reviews (graded 0-5 or correct/incorrect)
- Due-queue selection over caller-supplied candidates
- Item reset and progress history clearing
- Progress summary and study statistics
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from config import Settings, get_settings
from simorgh import __version__
from simorgh.core.errors import StorageError, ValidationError
from simorgh.service import ReviewService, build_service

from .routers.learners_router import router as learners_router


def create_app(service: ReviewService | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Review service to serve (built from settings if None)
        settings: Settings to use (cached settings if None)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        logger.info("Starting Simorgh review service...")
        # Injected services are closed by their caller
        owns_service = app.state.review_service is None
        if owns_service:
            app.state.review_service = build_service(settings)
        logger.info(
            f"Service started on {settings.api_host}:{settings.api_port} "
            f"({app.state.review_service.scheduler.policy.name} policy)"
        )

        yield

        logger.info("Shutting down Simorgh review service...")
        if owns_service:
            app.state.review_service.store.close()

    app = FastAPI(
        title="Simorgh Review Scheduler",
        description="Spaced-repetition scheduling and learner progress for vocabulary, phrases and flashcards.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.review_service = service

    # CORS middleware for the mobile app during local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "field": exc.field},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"Storage failure on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={"detail": "Review storage unavailable, retry later", "operation": exc.operation},
        )

    # ========================================
    # Health & Status Endpoints
    # ========================================

    @app.get("/", tags=["Health"])
    def root() -> dict[str, str]:
        """Root endpoint returning service info."""
        return {
            "service": "simorgh-review",
            "version": __version__,
            "status": "ok",
        }

    @app.get("/health", tags=["Health"])
    def health_check() -> dict[str, Any]:
        review_service: ReviewService | None = app.state.review_service
        return {
            "status": "healthy" if review_service is not None else "starting",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "policy": review_service.scheduler.policy.name if review_service else None,
        }

    app.include_router(learners_router, prefix="/api/learners", tags=["Learners"])
    return app
