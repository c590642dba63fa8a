"""
FastAPI application entry point.

Using an application factory (create_app) so tests can build an app with
their own Settings instead of the environment.

For local development:
    uvicorn whisperdrop.main:app --reload --port 3000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import health, presign
from .bootstrap import (
    CorsStatus,
    build_storage_client,
    configure_logging,
    reconcile_on_startup,
)
from .config.settings import Settings, get_settings
from .core.storage.errors import SigningError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: validate configuration, build the shared storage client and
    self-heal the bucket CORS policy before traffic is accepted.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Whisperdrop API starting",
        extra={"version": settings.api_version, "mock_storage": settings.storage_mock_mode},
    )

    # Missing storage configuration is fatal
    settings.require_valid()

    client = build_storage_client(settings)
    app.state.storage_client = client

    if settings.auto_setup_cors:
        app.state.cors_status = await reconcile_on_startup(client)
    else:
        app.state.cors_status = CorsStatus(state="skipped", detail="AUTO_SETUP_CORS is disabled")

    yield

    logger.info("Whisperdrop API shutting down")


def _describe_validation_error(error: dict) -> str:
    field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{field}: {error.get('msg')}" if field else str(error.get("msg"))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Presigned URLs for uploading audio recordings and transcripts
        directly to object storage from the browser.

        1. `POST /api/presign-audio` - get a PUT URL and a GET URL for a new recording
        2. Upload the recording straight to the bucket with the PUT URL
        3. `POST /api/presign-transcript` - get URLs for the recording's transcript
        """,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(presign.router, prefix="/api", tags=["Presign"])

    @app.exception_handler(SigningError)
    async def signing_error_handler(request: Request, exc: SigningError):
        logger.error(
            "Error generating presigned URL",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Every error response body carries `error`
        message = "; ".join(_describe_validation_error(err) for err in exc.errors())
        logger.info(
            "Rejected invalid request",
            extra={"path": request.url.path, "error": message},
        )
        return JSONResponse(status_code=422, content={"error": message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Log the full error server-side, return a generic message."""
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "whisperdrop.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
