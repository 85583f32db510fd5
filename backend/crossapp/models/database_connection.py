"""DatabaseConnection ORM — persisted connection configurations (database_connections).

Invariants:
    - connection_name is unique
    - No secret column exists; credential_ref points into the SecretStore
    - api_endpoints / connection_config stored as JSON documents
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from crossapp.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseConnection(Base):
    __tablename__ = "database_connections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    connection_name: Mapped[str] = mapped_column(
        String(200), nullable=False, unique=True,
    )
    app_schema: Mapped[str] = mapped_column(
        String(63), nullable=False, default="public", index=True,
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    port: Mapped[int | None] = mapped_column(Integer, nullable=True)
    database_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    username: Mapped[str | None] = mapped_column(String(200), nullable=True)
    credential_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    api_endpoints: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    connection_config: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
