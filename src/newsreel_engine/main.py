"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from newsreel_engine import __version__
from newsreel_engine.api.routes import health, videos
from newsreel_engine.config import settings
from newsreel_engine.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(
        "application_starting",
        version=__version__,
        providers=health.configured_providers(settings),
    )

    missing = [name for name, ok in health.provider_credentials(settings).items() if not ok]
    if missing:
        logger.warning("provider_credentials_missing", components=missing)

    # Startup: verify database connection and schema
    try:
        from newsreel_engine.db.session import init_db

        init_db()
        logger.info("database_ready")
    except Exception as e:
        # Readiness reports the failure
        logger.error("database_not_ready", error=str(e))

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="Newsreel Engine",
    description="News story to narrated video pipeline",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.include_router(health.router)
app.include_router(videos.router, prefix="/api/v1")

# Local object store; a CDN serves storage_public_base_url in production
if settings.serve_media:
    app.mount(
        "/media",
        StaticFiles(directory=settings.storage_path, check_dir=False),
        name="media",
    )


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {
        "name": "Newsreel Engine",
        "version": __version__,
        "docs": "/docs",
    }
