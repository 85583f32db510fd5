"""CrossApp Context — explicit service container wiring registry, router, queue and services.

Invariants:
    - One context per application (or per test); nothing is module-global
    - The queue executor is SyncDispatch over the same CrossAppService that
      enqueues audit entries (bound after construction, no import cycle)
    - Facade methods delegate; they add no behaviour of their own

Design Decisions:
    - Built by build_context(settings, ...) and stored on app.state by the
      FastAPI lifespan; tests inject a fake client factory and an httpx transport
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from crossapp.config import Settings
from crossapp.core.connection_types import Connection, ConnectionSpec
from crossapp.core.domain_types import ACADEMIES, FINANCIAL, SyncKind, TieBreak
from crossapp.core.repository_protocols import ClientFactory, NotificationSink
from crossapp.core.sync_operations import SyncOperation, UserRef
from crossapp.infrastructure.backend_client import ClientHandle, create_supabase_client
from crossapp.infrastructure.database import DatabaseSessionManager
from crossapp.infrastructure.notifications import LoggingNotificationSink
from crossapp.infrastructure.secret_store import SecretStore
from crossapp.infrastructure.sql_stores import SqlConnectionStore, SqlSettingsStore
from crossapp.services.connection_admin import ConnectionAdminService
from crossapp.services.connection_registry import ConnectionRegistry
from crossapp.services.connection_tester import ConnectionTester, ConnectionTestResult
from crossapp.services.cross_app_service import CrossAppService, UserSyncResult
from crossapp.services.cross_domain_query import CrossDomainQuery, NamespaceResult, QueryFn
from crossapp.services.schema_router import SchemaRouter
from crossapp.services.sync_dispatch import SyncDispatch
from crossapp.services.sync_queue import RetryPolicy, SyncQueue

logger = logging.getLogger(__name__)


@dataclass
class CrossAppContext:
    settings: Settings
    secrets: SecretStore
    registry: ConnectionRegistry
    router: SchemaRouter
    query: CrossDomainQuery
    queue: SyncQueue
    service: CrossAppService
    tester: ConnectionTester
    admin: ConnectionAdminService
    db: DatabaseSessionManager | None = None

    # ─── Connections ────────────────────────────────────────────

    def register_connection(
        self, name: str, config: Mapping[str, Any] | ConnectionSpec,
    ) -> Connection:
        return self.registry.register(name, config)

    def get_client(self, name: str = "default") -> ClientHandle | None:
        return self.registry.get(name)

    def get_schema_client(self, namespace: str) -> ClientHandle | None:
        return self.router.resolve(namespace)

    def list_connections(
        self, namespace: str | None = None, status: str | None = None,
    ) -> list[dict]:
        return self.registry.list(namespace=namespace, status=status)

    def remove_connection(self, name: str) -> bool:
        return self.registry.remove(name)

    async def test_connection(
        self,
        target: str | Mapping[str, Any] | ConnectionSpec,
        timeout: float | None = None,
    ) -> ConnectionTestResult:
        return await self.tester.test(target, timeout)

    # ─── Cross-domain ───────────────────────────────────────────

    async def cross_schema_query(
        self, queries: Mapping[str, QueryFn],
    ) -> dict[str, NamespaceResult]:
        return await self.query.run(queries)

    def queue_sync(self, operation: SyncOperation) -> str:
        return self.queue.enqueue(operation)

    async def sync_user(
        self,
        user_ref: UserRef | dict | str,
        source_namespace: str = ACADEMIES,
        target_namespaces: list[str] | None = None,
    ) -> UserSyncResult:
        return await self.service.sync_user(
            user_ref, source_namespace, target_namespaces or [FINANCIAL],
        )

    async def create_payment_from_reference(
        self, player_ref: UserRef | dict | str, payment_payload: dict,
    ) -> dict:
        return await self.service.create_payment_from_reference(
            player_ref, payment_payload,
        )

    async def get_financial_summary(self, academy_id: str) -> dict:
        return await self.service.get_financial_summary(academy_id)

    async def get_cross_app_analytics(self, date_range: str | int = "30d") -> dict:
        return await self.service.get_cross_app_analytics(date_range)

    async def close(self) -> None:
        await self.queue.shutdown()
        if self.db is not None:
            await self.db.dispose()


def _retry_policies(settings: Settings) -> dict[str, RetryPolicy]:
    sync = RetryPolicy(
        max_attempts=settings.sync_max_attempts,
        base_delay_ms=settings.sync_base_delay_ms,
        max_delay_ms=settings.sync_max_delay_ms,
    )
    return {
        SyncKind.USER_SYNC.value: sync,
        SyncKind.FINANCIAL_SYNC.value: sync,
        SyncKind.AUDIT_LOG.value: RetryPolicy(
            max_attempts=settings.audit_max_attempts,
            base_delay_ms=settings.sync_base_delay_ms,
            max_delay_ms=settings.sync_max_delay_ms,
        ),
    }


def build_context(
    settings: Settings,
    db: DatabaseSessionManager | None = None,
    client_factory: ClientFactory = create_supabase_client,
    notifier: NotificationSink | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CrossAppContext:
    """Wire every collaborator from settings. Without db, admin changes are memory-only."""
    secrets = SecretStore(settings.connection_secrets)
    registry = ConnectionRegistry(client_factory, secrets)
    if settings.default_backend_url:
        registry.initialize_default(
            settings.default_backend_url,
            settings.default_backend_key.get_secret_value(),
            settings.default_namespace,
        )
    else:
        logger.warning("No default backend configured, schema fallback disabled")

    router = SchemaRouter(registry, TieBreak(settings.schema_tie_break))
    query = CrossDomainQuery(router)
    service = CrossAppService(router, query)
    queue = SyncQueue(
        retry_policies=_retry_policies(settings),
        dead_letter_limit=settings.dead_letter_limit,
    )
    queue.executor = SyncDispatch(service).execute
    service.bind_queue(queue)

    tester = ConnectionTester(
        registry,
        probe_table=settings.probe_table,
        default_timeout=settings.connection_test_timeout_seconds,
        transport=transport,
    )
    admin = ConnectionAdminService(
        registry,
        tester,
        secrets,
        connection_store=SqlConnectionStore(db) if db is not None else None,
        settings_store=SqlSettingsStore(db) if db is not None else None,
        notifier=notifier or LoggingNotificationSink(),
    )
    return CrossAppContext(
        settings=settings,
        secrets=secrets,
        registry=registry,
        router=router,
        query=query,
        queue=queue,
        service=service,
        tester=tester,
        admin=admin,
        db=db,
    )
