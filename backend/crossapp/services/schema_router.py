"""Schema Router — resolves a namespace to the client handle that serves it.

Invariants:
    - Primary lookup only considers ACTIVE connections
    - Several active connections on one namespace: the TieBreak policy picks exactly one
      (FIRST_REGISTERED = registration order, MOST_RECENTLY_ACTIVATED = latest activated_at)
    - No match: throwaway fallback handle on the default connection with the namespace
      overridden; it is never cached in the registry
    - No match and no default: None ("cross-domain operation unavailable")
"""

import logging
from datetime import datetime, timezone

from crossapp.core.connection_types import Connection
from crossapp.core.domain_types import ConnectionStatus, TieBreak
from crossapp.infrastructure.backend_client import ClientHandle
from crossapp.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SchemaRouter:
    def __init__(
        self,
        registry: ConnectionRegistry,
        tie_break: TieBreak = TieBreak.FIRST_REGISTERED,
    ):
        self.registry = registry
        self.tie_break = tie_break

    def primary_connection(self, namespace: str) -> Connection | None:
        """The active connection that owns the namespace, per tie-break policy."""
        candidates = [
            conn for conn in self.registry.connections()
            if conn.namespace == namespace and conn.status is ConnectionStatus.ACTIVE
        ]
        if not candidates:
            return None
        if len(candidates) > 1:
            logger.debug(
                f"{len(candidates)} active connections serve '{namespace}', "
                f"tie-break={self.tie_break.value}",
                extra={"namespace": namespace},
            )
        if self.tie_break is TieBreak.MOST_RECENTLY_ACTIVATED:
            # max() keeps the first of equal keys, so ties fall back to registration order
            return max(candidates, key=lambda c: c.activated_at or _EPOCH)
        return candidates[0]

    def resolve(self, namespace: str) -> ClientHandle | None:
        connection = self.primary_connection(namespace)
        if connection is not None:
            return self.registry.get(connection.name)

        default = self.registry.default_handle
        if default is None:
            logger.warning(
                f"No connection serves namespace '{namespace}' and no default is set",
                extra={"namespace": namespace},
            )
            return None
        return default.with_namespace(namespace)

    def namespaces(self) -> list[str]:
        """Namespaces served by an active connection, in registration order."""
        seen: dict[str, None] = {}
        for conn in self.registry.connections():
            if conn.status is ConnectionStatus.ACTIVE:
                seen.setdefault(conn.namespace, None)
        return list(seen)
