"""
Place Import API - Main Application Entry Point

Builds the FastAPI application: middleware, error handlers, health checks
and the places API under /api/v1/places. Run with ``uvicorn main:app``
or ``python main.py``.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, APIRouter

from place_import.core.config import get_settings
from place_import.core.dependencies import get_service_dependencies
from place_import.core.exceptions import configure_exception_handlers
from place_import.core.http_client import lifespan_manager
from place_import.core.logging_config import setup_structured_logging
from place_import.core.middleware import setup_middleware

# Import API routers
from place_import.api.places import places_router

settings = get_settings()

setup_structured_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup and release them on shutdown."""
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION} in {settings.ENVIRONMENT} mode")

    if not settings.google_api_configured:
        logger.warning("GOOGLE_MAPS_API_KEY is not set; import requests will fail with UNCONFIGURED")

    if settings.RATE_LIMIT_ENABLED:
        logger.info(f"Rate limiting enabled: {settings.RATE_LIMIT_REQUESTS} requests per {settings.RATE_LIMIT_TIMEFRAME} seconds")
    else:
        logger.info("Rate limiting disabled")

    async with lifespan_manager():
        yield
        await get_service_dependencies().close()

    logger.info(f"Shutting down {settings.PROJECT_NAME}")


def create_application() -> FastAPI:
    """
    Build a new application instance.

    Returns:
        FastAPI: The application
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.DESCRIPTION,
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # Setup middleware
    setup_middleware(app, settings)

    # Errors render as {code, message} problem documents
    configure_exception_handlers(app)

    # Unauthenticated, never rate limited
    @app.get("/health", tags=["Health"], summary="Basic health check")
    async def health_check():
        """Liveness plus whether a Maps key is configured."""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "google_api_configured": settings.google_api_configured,
            "timestamp": time.time()
        }

    @app.get("/health/detailed", tags=["Health"], summary="Detailed health check")
    async def detailed_health_check():
        """Basic health plus cache and upstream HTTP counters."""
        deps = get_service_dependencies()
        return {
            **(await health_check()),
            "cache": deps.cache.get_stats(),
            "http_client": deps.http_client.get_stats(),
        }

    @app.get("/ping", tags=["Health"], summary="Simple ping endpoint")
    async def ping():
        """Load balancer probe."""
        return {"ping": "pong"}

    # Create v1 router
    v1_router = APIRouter(prefix="/api/v1")
    v1_router.include_router(places_router, prefix="/places")

    app.include_router(v1_router)

    return app


app = create_application()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
