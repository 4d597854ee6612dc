"""HTTP middleware stack."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.kithgrid.core.config import Settings
from src.kithgrid.core.security import SecurityHeadersMiddleware

from .logging_context import logging_context_middleware

__all__ = ["logging_context_middleware", "setup_middlewares"]

CORS_METHODS = ["GET", "POST", "PUT", "DELETE"]
CORS_HEADERS = ["Authorization", "Content-Type", "X-Request-ID"]


def _content_security_policy(settings: Settings) -> str | None:
    # Swagger needs the relaxed default; the strict policy only applies without docs
    if settings.enable_openapi:
        return None
    return settings.csp_production or None


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Install middlewares innermost first.

    Starlette wraps each new middleware around the previous ones, so the
    correlation id middleware added last sees the request before anything else.
    """
    app.middleware("http")(logging_context_middleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        content_security_policy=_content_security_policy(settings),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
    app.add_middleware(CorrelationIdMiddleware)
