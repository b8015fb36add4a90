"""FastAPI application factory."""

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from colca.api.routes import flux, generation
from colca.core.config import Settings, configure_logging
from colca.services.flux.poll_relay import ReadyAssetCache

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup: log effective configuration (without secrets).
    Shutdown: log only; there are no background tasks or pooled connections.
    """
    settings: Settings = app.state.settings
    logger.info(
        "application.startup",
        app_env=settings.app_env,
        flux_create_url=settings.bfl_create_url,
        ready_cache=settings.bfl_cache_ready_assets,
        upload_configured=bool(settings.upload_endpoint),
    )

    yield

    logger.info("application.shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Pre-built settings (tests); loaded from the environment when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    app = FastAPI(
        title="COLCA Backend API",
        description="Car ad image generation proxy and upload relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Settings and the optional ready-asset cache are shared by all requests
    app.state.settings = settings
    app.state.ready_cache = (
        ReadyAssetCache(settings.bfl_ready_cache_size) if settings.bfl_cache_ready_assets else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
        """Answer wrong HTTP verbs with the proxy's JSON error shape."""
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            return JSONResponse(
                status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
                content={"error": "method_not_allowed"},
                headers=getattr(exc, "headers", None),
            )
        return await http_exception_handler(request, exc)

    app.include_router(flux.router)
    app.include_router(generation.router)

    @app.get("/health")
    async def health_check():
        """Liveness probe."""
        return {"status": "healthy"}

    # Preset car photos, served from disk when present
    gallery_dir = Path(settings.gallery_dir)
    if gallery_dir.is_dir():
        app.mount("/car", StaticFiles(directory=gallery_dir), name="car")
    else:
        logger.debug("gallery.dir_missing", gallery_dir=str(gallery_dir))

    return app


def main() -> None:
    """Launch the API server with uvicorn."""
    import uvicorn

    settings = Settings()  # type: ignore[call-arg]
    uvicorn.run("colca.app:create_app", factory=True, host=settings.host, port=settings.port)
