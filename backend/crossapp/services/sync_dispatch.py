"""Sync Dispatch — explicit routing from SyncOperation.kind to a domain operation.

Invariants:
    - Every kind -> handler mapping is visible in one dict; no getattr magic
    - Unknown kinds raise InvalidOperationError (the queue dead-letters them)
    - Handlers raise on failure so the queue can retry or dead-letter
"""

import logging
from typing import Any, Awaitable, Callable

from crossapp.core.errors import InvalidOperationError
from crossapp.core.sync_operations import AuditLog, FinancialSync, SyncOperation, UserSync
from crossapp.services.cross_app_service import CrossAppService

logger = logging.getLogger(__name__)


class SyncDispatch:
    """Routes operation kind -> CrossAppService call."""

    def __init__(self, service: CrossAppService):
        self._service = service
        self._handlers: dict[str, Callable[[Any], Awaitable[Any]]] = {
            "user_sync": self._user_sync,
            "financial_sync": self._financial_sync,
            "audit_log": self._audit_log,
        }

    async def execute(self, operation: SyncOperation) -> Any:
        handler = self._handlers.get(getattr(operation, "kind", None))
        if handler is None:
            raise InvalidOperationError(
                f"Unknown sync operation type: {getattr(operation, 'kind', None)}",
            )
        logger.debug(
            "Executing sync operation",
            extra={"operation_id": operation.id, "kind": operation.kind},
        )
        return await handler(operation)

    async def _user_sync(self, op: UserSync) -> Any:
        return await self._service.sync_user(
            op.user_ref, op.source_namespace, op.target_namespaces,
        )

    async def _financial_sync(self, op: FinancialSync) -> Any:
        return await self._service.sync_financial_data(op.payload, op.action)

    async def _audit_log(self, op: AuditLog) -> Any:
        return await self._service.write_audit_entry(op.entry)
