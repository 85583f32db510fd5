"""Connection Admin — create/update/delete with persistence, reload, system settings.

Tests:
    - Created connections persist without secret material and reload in order
    - Duplicate names are rejected and notified as errors
    - Updates merge nested endpoints and keep the stored credential
    - Delete clears registry, store and SecretStore
    - A failing store write rolls the registry back
    - System settings fall back to defaults and persist updates
    - A broken notification sink never breaks an admin operation
"""

import pytest
from sqlalchemy import select

from crossapp.core.errors import (
    ConnectionNotFoundError, DatabaseError, InvalidConnectionError,
)
from crossapp.infrastructure.secret_store import SecretStore
from crossapp.infrastructure.sql_stores import SqlConnectionStore, SqlSettingsStore
from crossapp.models.database_connection import DatabaseConnection
from crossapp.services.connection_admin import ConnectionAdminService
from crossapp.services.connection_registry import ConnectionRegistry
from crossapp.services.connection_tester import ConnectionTester


class RecordingSink:
    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def success(self, message):
        self.messages.append(("success", message))

    def error(self, message):
        self.messages.append(("error", message))


class BrokenSink:
    def success(self, message):
        raise RuntimeError("toast service down")

    def error(self, message):
        raise RuntimeError("toast service down")


class FailingStore:
    async def list_all(self):
        return []

    async def save(self, connection):
        raise DatabaseError("Connection or operational error", "execute")

    async def delete(self, name):
        raise DatabaseError("Connection or operational error", "execute")


def _admin(factory, db=None, sink=None, secrets=None, store=None):
    secrets = secrets or SecretStore()
    registry = ConnectionRegistry(factory, secrets)
    return ConnectionAdminService(
        registry,
        ConnectionTester(registry),
        secrets,
        connection_store=store or (SqlConnectionStore(db) if db else None),
        settings_store=SqlSettingsStore(db) if db else None,
        notifier=sink,
    )


async def test_create_persists_without_secret_and_reloads(factory, db):
    sink = RecordingSink()
    admin = _admin(factory, db, sink)

    view = await admin.create_connection({
        "name": "academies-db", "url": "https://a.test", "namespace": "academies",
        "credential": "s3cret",
    })
    await admin.create_connection({
        "name": "financial-db", "url": "https://f.test", "namespace": "financial",
    })

    assert view["has_credentials"] is True
    assert "s3cret" not in str(view)
    assert sink.messages[0] == ("success", "Database connection created successfully")

    async with db.session() as session:
        rows = (await session.execute(select(DatabaseConnection))).scalars().all()
    assert {r.credential_ref for r in rows} == {"connections/academies-db", None}
    assert all("s3cret" not in str(vars(r)) for r in rows)

    reloaded = _admin(factory, db)
    assert await reloaded.load() == 2
    assert [c["name"] for c in reloaded.connections()] == ["academies-db", "financial-db"]
    assert reloaded.registry.connection("academies-db").credential_ref == "connections/academies-db"


async def test_duplicate_name_rejected(factory, db):
    sink = RecordingSink()
    admin = _admin(factory, db, sink)
    await admin.create_connection({"name": "c1", "url": "https://a.test"})

    with pytest.raises(InvalidConnectionError):
        await admin.create_connection({"name": "c1", "url": "https://b.test"})

    assert sink.messages[-1] == ("error", "Failed to create database connection")
    assert admin.registry.connection("c1").url == "https://a.test"


async def test_invalid_config_not_persisted(factory, db):
    admin = _admin(factory, db)
    with pytest.raises(InvalidConnectionError):
        await admin.create_connection({"name": "c1", "url": "ftp://nope"})
    assert await SqlConnectionStore(db).list_all() == []


async def test_update_merges_endpoints_and_keeps_credential(factory, db):
    secrets = SecretStore()
    admin = _admin(factory, db, secrets=secrets)
    await admin.create_connection({
        "name": "c1", "url": "https://a.test", "credential": "k",
        "endpoints": {"health_check": "/health", "auth": "/auth/v1"},
    })
    handle = admin.registry.get("c1")

    view = await admin.update_connection("c1", {
        "name": "renamed", "endpoints": {"health_check": "/status"}, "status": "inactive",
    })

    assert view["name"] == "c1"
    assert view["endpoints"] == {"health_check": "/status", "auth": "/auth/v1", "data": None}
    assert view["status"] == "inactive"
    assert admin.registry.get("c1") is not handle
    assert admin.registry.get("c1").has_credentials
    [stored] = await SqlConnectionStore(db).list_all()
    assert stored.status.value == "inactive"


async def test_update_unknown_raises(factory):
    with pytest.raises(ConnectionNotFoundError):
        await _admin(factory).update_connection("nope", {"url": "https://x.test"})


async def test_delete_clears_registry_store_and_secret(factory, db):
    secrets = SecretStore()
    admin = _admin(factory, db, secrets=secrets)
    await admin.create_connection({"name": "c1", "url": "https://a.test", "credential": "k"})

    await admin.delete_connection("c1")

    assert "c1" not in admin.registry
    assert "connections/c1" not in secrets
    assert await SqlConnectionStore(db).list_all() == []
    with pytest.raises(ConnectionNotFoundError):
        await admin.delete_connection("c1")


async def test_store_failure_rolls_back_registry(factory):
    admin = _admin(factory, store=FailingStore())

    with pytest.raises(DatabaseError):
        await admin.create_connection({"name": "c1", "url": "https://a.test"})

    assert "c1" not in admin.registry


async def test_store_failure_on_update_restores_previous(factory):
    admin = _admin(factory)
    await admin.create_connection({"name": "c1", "url": "https://a.test"})
    admin.connection_store = FailingStore()

    with pytest.raises(DatabaseError):
        await admin.update_connection("c1", {"url": "https://b.test"})

    assert admin.registry.connection("c1").url == "https://a.test"


async def test_system_settings_defaults_and_persistence(factory, db):
    admin = _admin(factory, db)
    defaults = admin.system_settings()
    assert defaults["app"]["default_currency"] == "EUR"
    assert defaults["financial"]["tax_rate"] == 0.24

    updated = await admin.update_system_setting("financial", "tax_rate", 0.13, "VAT")

    assert updated["financial"]["tax_rate"] == 0.13
    assert updated["app"]["multi_schema_enabled"] is True

    reloaded = _admin(factory, db)
    await reloaded.load()
    assert reloaded.system_settings()["financial"]["tax_rate"] == 0.13
    assert reloaded.system_settings()["security"]["session_timeout"] == 3600


async def test_broken_sink_does_not_break_create(factory):
    admin = _admin(factory, sink=BrokenSink())
    view = await admin.create_connection({"name": "c1", "url": "https://a.test"})
    assert view["name"] == "c1"


async def test_test_connection_notifies_outcome(factory):
    sink = RecordingSink()
    admin = _admin(factory, sink=sink)
    await admin.create_connection({"name": "c1", "url": "https://a.test"})

    result = await admin.test_connection("c1")

    assert result.success is False
    assert sink.messages[-1][0] == "error"
    assert sink.messages[-1][1].startswith("Connection test failed")


async def test_store_failure_on_update_restores_credential(factory):
    secrets = SecretStore()
    admin = _admin(factory, secrets=secrets)
    await admin.create_connection({"name": "c1", "url": "https://a.test", "credential": "old"})
    admin.connection_store = FailingStore()

    with pytest.raises(DatabaseError):
        await admin.update_connection("c1", {"credential": "new"})

    assert secrets.get("connections/c1").get_secret_value() == "old"
    admin.registry.get("c1").client
    assert factory.created[-1][1] == "old"


async def test_store_failure_on_create_discards_credential(factory):
    secrets = SecretStore()
    admin = _admin(factory, secrets=secrets, store=FailingStore())

    with pytest.raises(DatabaseError):
        await admin.create_connection({"name": "c1", "url": "https://a.test", "credential": "k"})

    assert "connections/c1" not in secrets
    admin.connection_store = None
    view = await admin.create_connection({"name": "c1", "url": "https://a.test"})
    assert view["has_credentials"] is False
