"""Boundary Protocols — contracts between the engine and its collaborators.

Invariants:
    - Services depend on these Protocols, never on concrete stores or SDK clients
    - Implementations provided by the shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - QueryBuilder mirrors the PostgREST builder surface the backend SDK exposes,
      so test fakes and the real client are interchangeable
"""

from typing import Any, Protocol

from crossapp.core.connection_types import Connection


class QueryResponse(Protocol):
    data: Any


class QueryBuilder(Protocol):
    """Chainable PostgREST-style request builder."""
    def select(self, columns: str = "*", **kwargs: Any) -> "QueryBuilder": ...
    def insert(self, json: Any, **kwargs: Any) -> "QueryBuilder": ...
    def upsert(self, json: Any, **kwargs: Any) -> "QueryBuilder": ...
    def update(self, json: Any, **kwargs: Any) -> "QueryBuilder": ...
    def delete(self, **kwargs: Any) -> "QueryBuilder": ...
    def eq(self, column: str, value: Any) -> "QueryBuilder": ...
    def gte(self, column: str, value: Any) -> "QueryBuilder": ...
    def order(self, column: str, *, desc: bool = False) -> "QueryBuilder": ...
    def limit(self, size: int) -> "QueryBuilder": ...
    def single(self) -> "QueryBuilder": ...
    def maybe_single(self) -> "QueryBuilder": ...
    async def execute(self) -> QueryResponse | None: ...


class BackendClient(Protocol):
    """What a client factory must return."""
    def table(self, table_name: str) -> QueryBuilder: ...
    def rpc(self, fn: str, params: dict | None = None) -> QueryBuilder: ...


class ClientFactory(Protocol):
    def __call__(
        self, url: str, credential: str, options: dict[str, Any],
    ) -> BackendClient: ...


class NotificationSink(Protocol):
    """Cosmetic success/failure surfacing (toast in the UI)."""
    def success(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...


class ConnectionStore(Protocol):
    """Contract for database_connections persistence, implemented in infrastructure."""
    async def list_all(self) -> list[Connection]: ...
    async def save(self, connection: Connection) -> None: ...
    async def delete(self, name: str) -> bool: ...


class SettingsStore(Protocol):
    """Contract for system_settings persistence, implemented in infrastructure."""
    async def list_all(self) -> dict[str, dict[str, Any]]: ...
    async def save(
        self, category: str, key: str, value: Any, description: str | None = None,
    ) -> None: ...
