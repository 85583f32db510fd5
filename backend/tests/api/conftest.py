"""API test fixtures — FastAPI app over an in-memory CrossAppContext.

Invariants:
    - app.state.crossapp is replaced per test (ASGITransport skips the lifespan)
    - The persistence store is in-memory SQLite with all tables created
"""

import pytest
from httpx import ASGITransport, AsyncClient

from crossapp.infrastructure.database import DatabaseSessionManager
from crossapp.main import app
from crossapp.services.context import build_context


@pytest.fixture
async def api_ctx(settings, factory):
    db = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    context = build_context(settings, db=db, client_factory=factory)
    yield context
    await context.close()


@pytest.fixture
async def client(api_ctx):
    app.state.crossapp = api_ctx
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
