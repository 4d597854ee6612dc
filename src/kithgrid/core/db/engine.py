"""Process-wide async engine."""

import ssl
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.kithgrid.core.config import Settings, get_settings

_engine: AsyncEngine | None = None


def _ssl_context(mode: str) -> ssl.SSLContext | None:
    """Map a libpq-style sslmode to an SSLContext for asyncpg."""
    if mode == "disable":
        return None
    context = ssl.create_default_context()
    if mode in ("verify-ca", "verify-full"):
        context.check_hostname = mode == "verify-full"
        context.verify_mode = ssl.CERT_REQUIRED
    else:
        # prefer / require: encrypt without verifying the server
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _engine_options(settings: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    if not settings.database_url.startswith("postgresql+asyncpg"):
        # Local SQLite databases keep the dialect's default pool and no TLS
        return options

    options["pool_size"] = settings.database_pool_size
    options["max_overflow"] = settings.database_max_overflow
    context = _ssl_context(settings.database_ssl_mode)
    if context is not None:
        options["connect_args"] = {"ssl": context}
    return options


def get_engine() -> AsyncEngine:
    """Create the engine on first use and return the same one afterwards."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, **_engine_options(settings))
    return _engine


async def dispose_engine() -> None:
    """Close pooled connections; the next get_engine() builds a new engine."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
