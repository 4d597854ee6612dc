"""structlog setup and the context binders used by middleware and dependencies."""

import logging
import sys
from uuid import UUID

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "httpcore", "alembic.runtime")


def _processors(debug: bool) -> list[structlog.typing.Processor]:
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        # Tracebacks become a string field so each event stays one JSON line
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    return processors


def setup_logging(debug: bool = False) -> None:
    """Configure structlog: colored console output when ``debug``, JSON lines otherwise."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )

    structlog.configure(
        processors=_processors(debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(request_id: str | None) -> None:
    """Attach the correlation id to every log line of the current request."""
    if request_id:
        bind_contextvars(request_id=request_id)


def bind_session_context(
    identity_id: UUID, tenant_id: UUID | None, email: str | None = None
) -> None:
    """Bind the resolved session to all subsequent log calls.

    Args:
        identity_id: The authenticated identity's ID.
        tenant_id: The active tenant, or None for a tenant-less session.
        email: Only logged if settings.log_user_emails is True (GDPR compliance).
    """
    from src.kithgrid.core.config import get_settings

    bind_contextvars(
        identity_id=str(identity_id),
        tenant_id=str(tenant_id) if tenant_id else None,
    )
    if email and get_settings().log_user_emails:
        bind_contextvars(user_email=email)


def clear_request_context() -> None:
    clear_contextvars()
