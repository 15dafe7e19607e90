"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from newsreel_engine.api.deps import ObjectStoreDep
from newsreel_engine.config import Settings, settings
from newsreel_engine.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    providers: dict[str, str]


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    redis: bool
    object_store: bool
    credentials: dict[str, bool]


def configured_providers(config: Settings) -> dict[str, str]:
    return {
        "image_gen": config.image_gen_provider.lower(),
        "voiceover": config.voiceover_provider.lower(),
        "llm": config.llm_provider.lower(),
        "renderer": config.renderer_provider.lower(),
        "publisher": config.publisher_provider.lower(),
    }


def provider_credentials(config: Settings) -> dict[str, bool]:
    """Whether each selected provider has the credentials it needs.

    Stub providers need none.
    """
    google = bool(config.google_api_key)
    youtube = bool(
        config.youtube_client_id and config.youtube_client_secret and config.youtube_refresh_token
    )
    needs = {"gemini": google, "e2b": bool(config.e2b_api_key), "youtube": youtube}
    return {
        component: needs.get(provider, True)
        for component, provider in configured_providers(config).items()
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check that reports the selected providers.",
)
async def health_check() -> HealthResponse:
    from newsreel_engine import __version__

    return HealthResponse(
        status="healthy",
        version=__version__,
        providers=configured_providers(settings),
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description=(
        "Verifies the database schema, the broker, a writable object store and the "
        "credentials of the selected providers."
    ),
)
async def readiness_check(store: ObjectStoreDep) -> ReadinessResponse:
    database_ok = False
    try:
        from newsreel_engine.db.session import init_db

        init_db()
        database_ok = True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))

    redis_ok = False
    try:
        import redis

        r = redis.from_url(settings.redis_url)
        r.ping()
        redis_ok = True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))

    store_ok = store.is_writable()
    if not store_ok:
        logger.error("object_store_health_check_failed", base_path=str(store.base_path))

    credentials = provider_credentials(settings)
    missing = [name for name, ok in credentials.items() if not ok]
    if missing:
        logger.warning("provider_credentials_missing", components=missing)

    return ReadinessResponse(
        ready=database_ok and redis_ok and store_ok and not missing,
        database=database_ok,
        redis=redis_ok,
        object_store=store_ok,
        credentials=credentials,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Process liveness for the orchestrator.",
)
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
