"""Root conftest — shared test configuration and the in-memory CrossAppContext.

Invariants:
    - Tests never reach a real backend: every context uses FakeClientFactory
    - Retry delays are shrunk to milliseconds so retry paths stay fast
"""

import os

import pytest

# Ensure tests don't accidentally use real credentials
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEFAULT_BACKEND_URL", "")
os.environ.setdefault("LOG_FORMAT", "text")

from crossapp.config import Settings  # noqa: E402
from crossapp.services.context import build_context  # noqa: E402
from tests.fakes import DEFAULT_URL, FakeClientFactory  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        default_backend_url=DEFAULT_URL,
        default_backend_key="default-service-key",
        sync_max_attempts=3,
        sync_base_delay_ms=1,
        sync_max_delay_ms=5,
        audit_max_attempts=2,
    )


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
async def ctx(settings, factory):
    context = build_context(settings, client_factory=factory)
    yield context
    await context.queue.shutdown(timeout=1)
