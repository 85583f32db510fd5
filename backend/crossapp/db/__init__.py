"""Database Infrastructure — SQLAlchemy Base for the persistence store.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL, aiosqlite in tests
"""
