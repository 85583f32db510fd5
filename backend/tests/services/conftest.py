"""Service test fixtures — persistence store on in-memory SQLite.

Invariants:
    - Every test gets a fresh in-memory SQLite database with all tables created
"""

import pytest

from crossapp.infrastructure.database import DatabaseSessionManager


@pytest.fixture
async def db():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    await manager.create_all()
    yield manager
    await manager.dispose()
