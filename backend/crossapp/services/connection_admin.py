"""Connection Admin — administration use cases over the registry and the persistence store.

Invariants:
    - Registry and store move together: a failed store write rolls the registry back
      and restores the credential held before the write
    - Credentials go to the SecretStore; the store only ever sees credential_ref
    - Connection names are immutable; create on an existing name is rejected
    - Every outcome is surfaced to the NotificationSink; the sink never gates control flow
    - System settings fall back to DEFAULT_SYSTEM_SETTINGS for keys never written
"""

import copy
import logging
from typing import Any, Mapping

from pydantic import SecretStr

from crossapp.core.connection_types import Connection, ConnectionSpec, credential_ref_for
from crossapp.core.errors import (
    ConnectionNotFoundError, CrossAppError, ErrorContext, InvalidConnectionError,
)
from crossapp.core.repository_protocols import (
    ConnectionStore, NotificationSink, SettingsStore,
)
from crossapp.infrastructure.notifications import notify
from crossapp.infrastructure.secret_store import SecretStore
from crossapp.services.connection_registry import ConnectionRegistry
from crossapp.services.connection_tester import ConnectionTester, ConnectionTestResult

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_SETTINGS: dict[str, dict[str, Any]] = {
    "app": {"multi_schema_enabled": True, "default_currency": "EUR"},
    "security": {"session_timeout": 3600},
    "financial": {"tax_rate": 0.24},
}

_NESTED = ("endpoints", "config")


class ConnectionAdminService:
    def __init__(
        self,
        registry: ConnectionRegistry,
        tester: ConnectionTester,
        secrets: SecretStore,
        connection_store: ConnectionStore | None = None,
        settings_store: SettingsStore | None = None,
        notifier: NotificationSink | None = None,
    ):
        self.registry = registry
        self.tester = tester
        self.secrets = secrets
        self.connection_store = connection_store
        self.settings_store = settings_store
        self.notifier = notifier
        self._settings = copy.deepcopy(DEFAULT_SYSTEM_SETTINGS)

    async def load(self) -> int:
        """Populate the registry and settings from the store (startup)."""
        loaded = 0
        if self.connection_store is not None:
            for connection in await self.connection_store.list_all():
                try:
                    self.registry.register(connection.name, connection.model_dump())
                    loaded += 1
                except InvalidConnectionError as e:
                    logger.error(
                        f"Skipping stored connection: {e.message}",
                        extra={"connection": connection.name},
                    )
        if self.settings_store is not None:
            for category, values in (await self.settings_store.list_all()).items():
                self._settings.setdefault(category, {}).update(values)
        logger.info(f"Loaded {loaded} connection(s) from the store")
        return loaded

    # ─── Connections ────────────────────────────────────────────

    async def create_connection(
        self, spec: Mapping[str, Any] | ConnectionSpec,
    ) -> dict:
        data = spec.model_dump() if isinstance(spec, ConnectionSpec) else dict(spec)
        name = str(data.get("name") or "").strip()
        if name in self.registry:
            raise self._failed(InvalidConnectionError(
                f"Connection '{name}' already exists", "name",
                ErrorContext(connection_name=name),
            ), "Failed to create database connection")
        secret = self.secrets.get(credential_ref_for(name))
        try:
            connection = self.registry.register(name, data)
            await self._persist(connection, previous=None, secret=secret)
        except CrossAppError as e:
            raise self._failed(e, "Failed to create database connection")
        notify(self.notifier, "success", "Database connection created successfully")
        return self._view(connection.name)

    async def update_connection(self, name: str, updates: Mapping[str, Any]) -> dict:
        previous = self.registry.connection(name)
        if previous is None or name not in self.registry:
            raise self._failed(ConnectionNotFoundError(name), "Failed to update connection")
        merged = previous.model_dump(exclude={"activated_at", "updated_at"})
        for key, value in updates.items():
            if key == "name":
                continue
            if key in _NESTED and isinstance(value, Mapping):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        secret = self.secrets.get(credential_ref_for(name))
        try:
            connection = self.registry.register(name, merged)
            await self._persist(connection, previous=previous, secret=secret)
        except CrossAppError as e:
            raise self._failed(e, "Failed to update connection")
        notify(self.notifier, "success", "Connection updated successfully")
        return self._view(name)

    async def delete_connection(self, name: str) -> None:
        connection = self.registry.connection(name)
        if connection is None or name not in self.registry:
            raise self._failed(ConnectionNotFoundError(name), "Failed to delete connection")
        if self.connection_store is not None:
            try:
                await self.connection_store.delete(name)
            except CrossAppError as e:
                raise self._failed(e, "Failed to delete connection")
        self.registry.remove(name)
        self.secrets.delete(connection.credential_ref)
        notify(self.notifier, "success", "Connection deleted successfully")

    async def test_connection(
        self,
        target: str | Mapping[str, Any] | ConnectionSpec,
        timeout: float | None = None,
    ) -> ConnectionTestResult:
        try:
            result = await self.tester.test(target, timeout)
        except CrossAppError as e:
            raise self._failed(e, "Connection test failed")
        if result.success:
            notify(self.notifier, "success", "Connection test successful")
        else:
            notify(self.notifier, "error", f"Connection test failed: {result.error}")
        return result

    def connections(
        self, namespace: str | None = None, status: str | None = None,
    ) -> list[dict]:
        return self.registry.list(namespace=namespace, status=status)

    # ─── System settings ────────────────────────────────────────

    def system_settings(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._settings)

    async def update_system_setting(
        self, category: str, key: str, value: Any, description: str | None = None,
    ) -> dict[str, dict[str, Any]]:
        if self.settings_store is not None:
            try:
                await self.settings_store.save(category, key, value, description)
            except CrossAppError as e:
                raise self._failed(e, "Failed to update system setting")
        self._settings.setdefault(category, {})[key] = value
        notify(self.notifier, "success", "System setting updated")
        return self.system_settings()

    # ─── Internals ──────────────────────────────────────────────

    async def _persist(
        self,
        connection: Connection,
        previous: Connection | None,
        secret: SecretStr | None,
    ) -> None:
        if self.connection_store is None:
            return
        try:
            await self.connection_store.save(connection)
        except CrossAppError:
            ref = credential_ref_for(connection.name)
            if secret is None:
                self.secrets.delete(ref)
            else:
                self.secrets.put(ref, secret)
            if previous is None:
                self.registry.remove(connection.name)
            else:
                self.registry.register(previous.name, previous.model_dump())
            raise

    def _view(self, name: str) -> dict:
        return next(view for view in self.registry.list() if view["name"] == name)

    def _failed(self, error: CrossAppError, message: str) -> CrossAppError:
        notify(self.notifier, "error", message)
        logger.error(
            f"{message}: {error.message}",
            extra={
                "connection": error.context.connection_name,
                "error_code": error.code,
            },
        )
        return error
