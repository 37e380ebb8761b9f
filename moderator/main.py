"""
FastAPI application entry point.

For local development:
    uvicorn moderator.main:app --reload

For production:
    gunicorn moderator.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import close_moderation_clients
from .api.routes import health, moderation
from .config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level.upper(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration problems on startup; the service still starts."""
    settings = app.state.settings

    logger.info(
        "Frame moderator starting",
        extra={
            "version": __version__,
            "provider": settings.moderation_provider,
            "debug": settings.debug,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    if settings.debug:
        logger.info(
            "Debug mode: frames will be copied to thumbnails directory",
            extra={"thumbnails_dir": str(settings.thumbnails_dir)},
        )

    yield

    await close_moderation_clients()
    logger.info("Frame moderator shutting down")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Application factory.

    Called once at startup in production, and per test with whatever
    settings the test needs. Explicit settings replace get_settings for
    every route dependency of this app.
    """
    explicit = settings is not None
    if settings is None:
        settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Per-frame content moderation for remotely hosted videos.

        `POST /moderate` with `{"url": "..."}` and a `zipstory-token` header.
        The video is sampled at one frame per second and each frame is rated
        G, PG, PG-13, R or Inappropriate.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    if explicit:
        app.dependency_overrides[get_settings] = lambda: settings

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        moderation.router,
        tags=["Moderation"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Frame Moderator API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Log the full error server-side, return a generic message.
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
            content={"detail": "Internal server error."}
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "moderator.main:app",
        host="0.0.0.0",
        port=8080,
        log_level=settings.log_level.lower(),
    )
