"""Tests for structured logging context."""

from uuid import uuid7

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.kithgrid.core.logging import (
    bind_request_context,
    bind_session_context,
    clear_request_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog output into a CapturingLogger for the test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    bind_request_context("req-42")
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "req-42"


def test_bind_request_context_with_none(capturing_logger):
    bind_request_context(None)
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_session_context(capturing_logger):
    """Email is only logged when log_user_emails=True."""
    identity_id = uuid7()
    tenant_id = uuid7()

    bind_session_context(identity_id, tenant_id, "resident@example.com")
    structlog.get_logger().info("test message")

    entry = capturing_logger.calls[0]
    assert entry.kwargs["identity_id"] == str(identity_id)
    assert entry.kwargs["tenant_id"] == str(tenant_id)
    assert "user_email" not in entry.kwargs


def test_bind_tenantless_session_context(capturing_logger):
    identity_id = uuid7()

    bind_session_context(identity_id, None)
    structlog.get_logger().info("test message")

    entry = capturing_logger.calls[0]
    assert entry.kwargs["identity_id"] == str(identity_id)
    assert entry.kwargs["tenant_id"] is None


def test_bind_session_context_with_email_logging_enabled(capturing_logger, monkeypatch):
    from unittest.mock import MagicMock

    from src.kithgrid.core import config

    mock_settings = MagicMock()
    mock_settings.log_user_emails = True
    monkeypatch.setattr(config, "get_settings", lambda: mock_settings)

    bind_session_context(uuid7(), uuid7(), "resident@example.com")
    structlog.get_logger().info("test message")

    assert capturing_logger.calls[0].kwargs["user_email"] == "resident@example.com"


def test_clear_request_context(capturing_logger):
    bind_request_context("req-42")
    bind_session_context(uuid7(), uuid7())

    clear_request_context()
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert "request_id" not in kwargs
    assert "identity_id" not in kwargs
    assert "tenant_id" not in kwargs
