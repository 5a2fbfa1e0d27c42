"""
Main FastAPI application factory.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .models import ErrorResponse
from .routes import health, sync, calendar, cancellations
from ..main import ChannelSyncAutomation
from ..utils.logger import get_logger


logger = get_logger("channel_sync_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service container on startup and stop the scheduler on shutdown."""
    logger.info("Starting FastAPI application", environment=settings.environment, version=settings.app_version)

    if getattr(app.state, "service", None) is None:
        app.state.service = ChannelSyncAutomation(log_level=settings.log_level)
        app.state.service.scheduler.start()

    yield

    logger.info("Shutting down FastAPI application")
    app.state.service.shutdown()


def create_app(service: Optional[ChannelSyncAutomation] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: Pre-built service container; built at startup when omitted

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                success=False,
                message="Internal server error",
                error_code="INTERNAL_ERROR",
                details={"error": str(exc)}
            ).model_dump(mode="json")
        )

    for module in (health, sync, calendar, cancellations):
        app.include_router(module.router, prefix=f"{settings.api_prefix}/{settings.api_version}")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "Channel Sync API is running",
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": f"{settings.api_prefix}/docs"
        }

    return app
