"""
Thunder Cloud Service - Main FastAPI Application

Detects convective cloud formation around registered observers and pushes
alerts, backed by a 5-minute weather cache over the Open-Meteo forecast API.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn
from dotenv import load_dotenv
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
import logging

from thundercloud import __version__
from thundercloud.api.v1 import router as v1_router
from thundercloud.core.config import settings
from thundercloud.models import ErrorResponse
from thundercloud.services.container import ServiceContainer, build_container

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[FastApiIntegration()],
        traces_sample_rate=0.1,  # 10% of transactions
        environment=settings.environment,
    )


def _error_response(status_code: int, error: str, message: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, timestamp=datetime.now(timezone.utc).isoformat())
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI application around a service container.

    Args:
        container: Pre-built services (defaults to one built from settings)
    """
    container = container or build_container(settings)

    app = FastAPI(
        title=container.config.app_name,
        description="Thunder cloud detection and alerting service",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.container = container

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Global exception handlers to ensure JSON responses
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions and return JSON responses"""
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        if isinstance(exc.detail, dict):
            return _error_response(exc.status_code, exc.detail.get("error", "Error"), exc.detail.get("message"))
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors and return JSON responses"""
        logger.error(f"Validation Error: {exc.errors()}")
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        return _error_response(400, "Validation error", "; ".join(messages))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions and return JSON responses"""
        logger.error(f"Unhandled Exception: {type(exc).__name__}: {str(exc)}")
        sentry_sdk.capture_exception(exc)
        return _error_response(500, "Internal server error", "An unexpected error occurred")

    # Include API routes
    app.include_router(v1_router, prefix="/api/v1")

    # Startup and shutdown event handlers
    @app.on_event("startup")
    async def startup_event():
        """Start scheduled jobs."""
        if not container.config.scheduler_enabled:
            logger.info("Background scheduler disabled")
            return

        if container.scheduler.start():
            logger.info("Background scheduler started")
        else:
            logger.warning("Failed to start background scheduler")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop scheduled jobs."""
        try:
            container.scheduler.stop()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    @app.get("/")
    async def root():
        """Root endpoint with service information"""
        return {
            "service": container.config.app_name,
            "version": __version__,
            "status": "running",
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "thundercloud-service",
            "version": __version__,
            "scheduler": container.scheduler.get_scheduler_status()["running"]
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "thundercloud.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
