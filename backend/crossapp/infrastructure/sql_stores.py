"""SQL Stores — ConnectionStore and SettingsStore over the persistence database.

Invariants:
    - One session per call; commit inside the session context (rollback on error)
    - Rows map 1:1 to Connection records; credential values never touch the DB
    - list_all() returns connections in creation order (registration order on reload)
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select

from crossapp.core.connection_types import Connection
from crossapp.infrastructure.database import DatabaseSessionManager
from crossapp.models.database_connection import DatabaseConnection
from crossapp.models.system_setting import SystemSetting

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_connection(row: DatabaseConnection) -> Connection:
    return Connection(
        name=row.connection_name,
        namespace=row.app_schema,
        url=row.url,
        host=row.host,
        port=row.port,
        database_name=row.database_name,
        username=row.username,
        credential_ref=row.credential_ref,
        endpoints=row.api_endpoints or {},
        config=row.connection_config or {},
        status=row.status,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
        activated_at=_as_utc(row.activated_at),
    )


def _apply(row: DatabaseConnection, connection: Connection) -> None:
    row.app_schema = connection.namespace
    row.url = connection.url
    row.host = connection.host
    row.port = connection.port
    row.database_name = connection.database_name
    row.username = connection.username
    row.credential_ref = connection.credential_ref
    row.api_endpoints = connection.endpoints.model_dump()
    row.connection_config = connection.config.model_dump()
    row.status = connection.status.value
    row.created_at = connection.created_at
    row.updated_at = connection.updated_at
    row.activated_at = connection.activated_at


class SqlConnectionStore:
    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def list_all(self) -> list[Connection]:
        async with self._db.session() as session:
            result = await session.execute(
                select(DatabaseConnection).order_by(DatabaseConnection.created_at),
            )
            return [_to_connection(row) for row in result.scalars().all()]

    async def save(self, connection: Connection) -> None:
        async with self._db.session() as session:
            result = await session.execute(
                select(DatabaseConnection).where(
                    DatabaseConnection.connection_name == connection.name,
                ),
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = DatabaseConnection(connection_name=connection.name)
                session.add(row)
            _apply(row, connection)
            await session.commit()

    async def delete(self, name: str) -> bool:
        async with self._db.session() as session:
            result = await session.execute(
                delete(DatabaseConnection).where(
                    DatabaseConnection.connection_name == name,
                ),
            )
            await session.commit()
            return (result.rowcount or 0) > 0


class SqlSettingsStore:
    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def list_all(self) -> dict[str, dict[str, Any]]:
        async with self._db.session() as session:
            result = await session.execute(select(SystemSetting))
            settings: dict[str, dict[str, Any]] = {}
            for row in result.scalars().all():
                settings.setdefault(row.category, {})[row.key] = row.value
            return settings

    async def save(
        self, category: str, key: str, value: Any, description: str | None = None,
    ) -> None:
        async with self._db.session() as session:
            result = await session.execute(
                select(SystemSetting).where(
                    SystemSetting.category == category, SystemSetting.key == key,
                ),
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = SystemSetting(category=category, key=key, value=value)
                session.add(row)
            row.value = value
            if description is not None:
                row.description = description
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
