import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.kithgrid.api.middlewares import setup_middlewares
from src.kithgrid.api.v1.router import api_router
from src.kithgrid.core.config import Settings, get_settings
from src.kithgrid.core.db import dispose_engine, get_session
from src.kithgrid.core.exceptions import setup_exception_handlers
from src.kithgrid.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

OPENAPI_TAGS = [
    {"name": "auth", "description": "Login, registration and session resolution"},
    {"name": "invitations", "description": "Invitation code issuance and redemption"},
    {"name": "memberships", "description": "Community memberships and roles"},
]

health_router = APIRouter(tags=["health"])


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}", env=settings.app_env)

    yield

    await dispose_engine()
    logger.info("Shutdown complete")


@health_router.get("/health")
async def health() -> JSONResponse:
    """Liveness plus a round trip to the database."""
    database = "healthy"
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check failed", error=str(e))
        database = "unhealthy"

    healthy = database == "healthy"
    return JSONResponse(
        content={"status": "healthy" if healthy else "unhealthy", "database": database},
        status_code=200 if healthy else 503,
    )


def _setup_metrics(app: FastAPI, settings: Settings) -> None:
    """Expose Prometheus metrics, behind X-Metrics-Key when one is configured."""
    instrumentator = Instrumentator().instrument(app)
    if not settings.metrics_api_key:
        instrumentator.expose(app, endpoint="/metrics")
        return

    expected_key = settings.metrics_api_key
    api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

    async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
        if api_key is None or not secrets.compare_digest(api_key, expected_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing metrics API key",
            )

    instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])


def create_app() -> FastAPI:
    settings = get_settings()
    docs_enabled = settings.enable_openapi

    app = FastAPI(
        title=settings.app_name,
        description="Identity and community membership API",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings)

    app.include_router(api_router)
    app.include_router(health_router)
    _setup_metrics(app, settings)
    return app


app = create_app()
