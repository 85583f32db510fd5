"""Connection Registry — named backend connections and their lazily-built client handles.

Invariants:
    - Connection names are unique; re-registering replaces the record in place
      (registration position kept) and drops the cached ClientHandle
    - get() never builds a handle for a name that was never registered
    - Plaintext credentials are moved into the SecretStore on register();
      the stored Connection keeps only credential_ref
    - list() output is secret-free
    - No backend connectivity is checked here (see ConnectionTester)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import ValidationError

from crossapp.core.connection_types import (
    Connection, ConnectionSpec, credential_ref_for,
)
from crossapp.core.domain_types import DEFAULT_CONNECTION, ConnectionStatus
from crossapp.core.errors import ErrorContext, InvalidConnectionError
from crossapp.core.repository_protocols import ClientFactory
from crossapp.infrastructure.backend_client import ClientHandle
from crossapp.infrastructure.secret_store import SecretStore

logger = logging.getLogger(__name__)


def _validation_to_error(name: str, exc: ValidationError) -> InvalidConnectionError:
    first = exc.errors()[0]
    field = ".".join(str(loc) for loc in first["loc"]) or "config"
    return InvalidConnectionError(
        f"Invalid connection '{name}': {field}: {first['msg']}",
        field,
        ErrorContext(connection_name=name),
    )


class ConnectionRegistry:
    """In-memory registry; one instance per CrossAppContext."""

    def __init__(self, client_factory: ClientFactory, secrets: SecretStore):
        self._factory = client_factory
        self._secrets = secrets
        self._connections: dict[str, Connection] = {}
        self._handles: dict[str, ClientHandle] = {}
        self._default: Connection | None = None
        self._default_handle: ClientHandle | None = None

    # ─── Default connection ─────────────────────────────────────

    def initialize_default(
        self, url: str, credential: str, namespace: str = "academies",
    ) -> ClientHandle:
        """Install the default connection used for schema fallback."""
        ref = self._secrets.put(credential_ref_for(DEFAULT_CONNECTION), credential)
        try:
            self._default = Connection(
                name=DEFAULT_CONNECTION, namespace=namespace, url=url,
                credential_ref=ref,
            )
        except ValidationError as e:
            raise _validation_to_error(DEFAULT_CONNECTION, e) from e
        self._default_handle = self._build_handle(self._default)
        logger.info(
            "Default connection initialized",
            extra={"connection": DEFAULT_CONNECTION, "namespace": namespace},
        )
        return self._default_handle

    @property
    def default_handle(self) -> ClientHandle | None:
        return self._default_handle

    # ─── Mutation ───────────────────────────────────────────────

    def register(
        self, name: str, config: Mapping[str, Any] | ConnectionSpec,
    ) -> Connection:
        """Validate and store a connection; eagerly build its handle if it has credentials."""
        data = (
            config.model_dump() if isinstance(config, ConnectionSpec)
            else dict(config)
        )
        data["name"] = name
        try:
            spec = ConnectionSpec.model_validate(data)
        except ValidationError as e:
            raise _validation_to_error(name, e) from e

        ref = spec.credential_ref
        if spec.credential is not None and spec.credential.get_secret_value():
            ref = self._secrets.put(credential_ref_for(spec.name), spec.credential)
        elif ref is None and credential_ref_for(spec.name) in self._secrets:
            # seeded from configuration (connection_secrets)
            ref = credential_ref_for(spec.name)

        now = datetime.now(timezone.utc)
        previous = self._connections.get(spec.name)
        activated_at = previous.activated_at if previous else None
        if spec.status is ConnectionStatus.ACTIVE and (
            previous is None or previous.status is not ConnectionStatus.ACTIVE
        ):
            activated_at = now
        created_at = data.get("created_at") or (previous.created_at if previous else now)

        connection = Connection(
            **spec.model_dump(exclude={"credential", "credential_ref"}),
            credential_ref=ref,
            created_at=created_at,
            updated_at=now,
            activated_at=data.get("activated_at") or activated_at,
        )
        self._handles.pop(spec.name, None)
        self._connections[spec.name] = connection

        if self._secrets.get(ref) is not None:
            self._handles[spec.name] = self._build_handle(connection)
        logger.info(
            "Connection registered",
            extra={
                "connection": spec.name,
                "namespace": connection.namespace,
            },
        )
        return connection

    def remove(self, name: str) -> bool:
        """Drop the connection and its handle. Returns whether it existed."""
        self._handles.pop(name, None)
        existed = self._connections.pop(name, None) is not None
        if existed:
            logger.info("Connection removed", extra={"connection": name})
        return existed

    # ─── Lookup ─────────────────────────────────────────────────

    def get(self, name: str = DEFAULT_CONNECTION) -> ClientHandle | None:
        """Cached handle for a registered name, built on first use."""
        if name == DEFAULT_CONNECTION and name not in self._connections:
            return self._default_handle
        handle = self._handles.get(name)
        if handle is not None:
            return handle
        connection = self._connections.get(name)
        if connection is None:
            return None
        handle = self._build_handle(connection)
        self._handles[name] = handle
        return handle

    def connection(self, name: str) -> Connection | None:
        if name == DEFAULT_CONNECTION and name not in self._connections:
            return self._default
        return self._connections.get(name)

    def connections(self) -> list[Connection]:
        """Registered connections in registration order."""
        return list(self._connections.values())

    def list(
        self,
        namespace: str | None = None,
        status: ConnectionStatus | str | None = None,
    ) -> list[dict]:
        """Secret-free view of registered connections with a has_client flag."""
        wanted = ConnectionStatus(status) if status is not None else None
        return [
            conn.public_view(has_client=name in self._handles)
            for name, conn in self._connections.items()
            if (namespace is None or conn.namespace == namespace)
            and (wanted is None or conn.status is wanted)
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def transient_handle(
        self, config: Mapping[str, Any] | ConnectionSpec,
    ) -> tuple[Connection, ClientHandle]:
        """Validate a config and build an unregistered handle for it (connection tests)."""
        data = (
            config.model_dump() if isinstance(config, ConnectionSpec)
            else dict(config)
        )
        name = str(data.get("name") or "unsaved")
        data["name"] = name
        try:
            spec = ConnectionSpec.model_validate(data)
        except ValidationError as e:
            raise _validation_to_error(name, e) from e
        connection = Connection(
            **spec.model_dump(exclude={"credential", "credential_ref"}),
            credential_ref=spec.credential_ref,
        )
        credential = spec.credential
        if credential is None or not credential.get_secret_value():
            credential = self._secrets.get(spec.credential_ref)
        handle = ClientHandle(
            connection_name=name,
            url=connection.url,
            namespace=connection.namespace,
            credential=credential,
            factory=self._factory,
            options=connection.config.model_dump(),
        )
        return connection, handle

    # ─── Internals ──────────────────────────────────────────────

    def _build_handle(self, connection: Connection) -> ClientHandle:
        return ClientHandle(
            connection_name=connection.name,
            url=connection.url,
            namespace=connection.namespace,
            credential=self._secrets.get(connection.credential_ref),
            factory=self._factory,
            options=connection.config.model_dump(),
        )
