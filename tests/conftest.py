"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os
import tempfile

# Settings are read at import time by the security module
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'kithgrid-test.db')}",
)
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-kithgrid-at-least-32-chars")
os.environ.setdefault("SUPER_ADMIN_EMAILS", '["operator@kithgrid.test"]')
os.environ.setdefault("SOCIAL_ASSERTION_SECRET", "test-social-assertion-secret-at-least-32-chars")
# Cheap hashing keeps the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.pop("RESEND_API_KEY", None)

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import Callable, Iterator

import pytest

from src.kithgrid.core.config import get_settings

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def override_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[Callable[..., None]]:
    """Set settings through env vars for one test and rebuild the cached settings."""

    def _apply(**values: object) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key.upper(), str(value))
        get_settings.cache_clear()

    yield _apply
    monkeypatch.undo()
    get_settings.cache_clear()
