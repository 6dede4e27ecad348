"""
FastAPI application entry point.

This module creates and configures the FastAPI application through an
application factory, so tests can build apps with different settings.

For local development:
    uvicorn media_gateway.main:app --reload

For production:
    gunicorn media_gateway.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import health, objects, offline_cache, uploads
from .config.settings import get_settings
from .core.objects.errors import GatewayError, RangeNotSatisfiableError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration problems on startup and mark shutdown."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "Media gateway starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {"r2": settings.r2_mock_mode},
            "objects_read_policy": settings.objects_read_policy,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Media gateway shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Upload credentials and object streaming for media apps.

        ## Workflow

        1. **Request an upload URL**: `POST /api/uploads/request-url`
           - Requires an authenticated session
           - Returns a signed `uploadURL` and the canonical `objectPath`

        2. **Upload**: `PUT <uploadURL>` directly to object storage

        3. **Save**: persist `objectPath` with the media record

        4. **Read**: `GET /objects/<entity-id>` streams the stored bytes
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        uploads.router,
        prefix="/api/uploads",
        tags=["Uploads"],
    )

    app.include_router(
        offline_cache.router,
        prefix="/api/offline-cache",
        tags=["Offline Cache"],
    )

    app.include_router(
        objects.router,
        prefix="/objects",
        tags=["Objects"],
    )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """Render taxonomy errors with their documented status and body."""
        headers = None
        if isinstance(exc, RangeNotSatisfiableError):
            headers = {"Content-Range": f"bytes */{exc.size}"}

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_body(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies are invalid-request errors, reported as 400."""
        errors = exc.errors()
        message = "Invalid request body"
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            message = f"Invalid field: {location}" if location else message

        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Logs the full error server-side and returns a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": __version__,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "media_gateway.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
