"""Cross-App Service — domain operations that span the academies, financial and shared namespaces.

Invariants:
    - Caller-visible failures (SourceNotFoundError, PrimaryParentNotFoundError,
      NamespaceUnavailableError) are raised before any write happens
    - User propagation is "sync if absent": an existence probe precedes every
      reference insert, so repeated syncs never duplicate reference rows
    - Payment creation emits its audit entry through the SyncQueue; audit
      failures never unwind a committed payment
    - log_cross_app_action() swallows every failure; write_audit_entry() raises
      (the queue needs the failure to retry / dead-letter)
    - Analytics and summaries keep the namespaces that answered when others fail

Design Decisions:
    - Relation traversal (player -> parent links -> primary parent) as three
      explicit reads instead of one embedded select: each step has its own
      failure mode and error type
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import ValidationError

from crossapp.core.analytics import parse_period, summarize_financials
from crossapp.core.domain_types import (
    ACADEMIES, ACADEMIES_TABLES, FINANCIAL, FINANCIAL_TABLES, SHARED,
    SHARED_TABLES, USER_REFERENCE_KEY, USER_REFERENCES_TABLE, FinancialAction,
)
from crossapp.core.errors import (
    ErrorContext, InvalidOperationError, NamespaceUnavailableError,
    PrimaryParentNotFoundError, SourceNotFoundError,
)
from crossapp.core.sync_operations import AuditLog, AuditLogEntry, UserRef
from crossapp.core.user_records import parse_user_record
from crossapp.infrastructure.backend_client import ClientHandle, execute
from crossapp.services.cross_domain_query import CrossDomainQuery
from crossapp.services.schema_router import SchemaRouter
from crossapp.services.sync_queue import SyncQueue

logger = logging.getLogger(__name__)


@dataclass
class UserSyncResult:
    user_id: str
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "success": True,
            "user_id": self.user_id,
            "created": self.created,
            "skipped": self.skipped,
            "unavailable": self.unavailable,
        }


def _ref_id(ref: UserRef | dict | str | int) -> str:
    if isinstance(ref, UserRef):
        return ref.id
    if isinstance(ref, dict):
        return str(ref["id"])
    return str(ref)


def _first_row(data: Any) -> dict | None:
    if isinstance(data, list):
        return data[0] if data else None
    return data


class CrossAppService:
    def __init__(
        self,
        router: SchemaRouter,
        query: CrossDomainQuery,
        queue: SyncQueue | None = None,
    ):
        self.router = router
        self.query = query
        self.queue = queue

    def bind_queue(self, queue: SyncQueue) -> None:
        self.queue = queue

    def _require(self, namespace: str) -> ClientHandle:
        handle = self.router.resolve(namespace)
        if handle is None:
            raise NamespaceUnavailableError(namespace)
        return handle

    # ─── User propagation ───────────────────────────────────────

    async def sync_user(
        self,
        user_ref: UserRef | dict | str,
        source_namespace: str = ACADEMIES,
        target_namespaces: Iterable[str] = (FINANCIAL,),
    ) -> UserSyncResult:
        """Copy a lightweight user reference into each target namespace if absent."""
        user_id = _ref_id(user_ref)
        source = self._require(source_namespace)
        users_table = ACADEMIES_TABLES["users"]
        row = await execute(
            source.table(users_table).select("*").eq("id", user_id).maybe_single(),
            "select", source_namespace, users_table,
        )
        if not row:
            raise SourceNotFoundError("User", user_id, source_namespace)
        try:
            user = parse_user_record(row)
        except ValidationError as e:
            raise InvalidOperationError(
                f"User '{user_id}' has an unsupported profile: {e.errors()[0]['msg']}",
                ErrorContext(namespace=source_namespace),
            ) from e

        result = UserSyncResult(user_id=user.id)
        synced_at = datetime.now(timezone.utc).isoformat()
        for target in target_namespaces:
            handle = self.router.resolve(target)
            if handle is None:
                result.unavailable.append(target)
                continue
            if await self._reference_exists(handle, user.id):
                result.skipped.append(target)
                continue
            await execute(
                handle.table(USER_REFERENCES_TABLE).upsert(
                    user.reference_row(synced_at), on_conflict=USER_REFERENCE_KEY,
                ),
                "upsert", target, USER_REFERENCES_TABLE,
            )
            result.created.append(target)
        logger.info(
            f"User {user.id} synced: created={result.created} skipped={result.skipped}",
            extra={"namespace": source_namespace},
        )
        return result

    async def _reference_exists(self, handle: ClientHandle, user_id: str) -> bool:
        rows = await execute(
            handle.table(USER_REFERENCES_TABLE)
            .select(USER_REFERENCE_KEY)
            .eq(USER_REFERENCE_KEY, user_id)
            .limit(1),
            "select", handle.namespace, USER_REFERENCES_TABLE,
        )
        return bool(rows)

    async def sync_user_everywhere(self, user_id: str) -> UserSyncResult:
        return await self.sync_user(UserRef(id=user_id), ACADEMIES, [FINANCIAL])

    # ─── Financial ──────────────────────────────────────────────

    async def sync_financial_data(
        self, payload: dict, action: FinancialAction | str = FinancialAction.CREATE,
    ) -> Any:
        try:
            action = FinancialAction(action)
        except ValueError:
            raise InvalidOperationError(f"Unknown financial action: {action}")
        financial = self._require(FINANCIAL)
        table = FINANCIAL_TABLES["payments"]
        if action is FinancialAction.CREATE:
            builder = financial.table(table).insert(payload)
        else:
            if payload.get("id") is None:
                raise InvalidOperationError(
                    f"Financial {action.value} requires a payment id",
                )
            if action is FinancialAction.UPDATE:
                builder = financial.table(table).update(payload).eq("id", payload["id"])
            else:
                builder = financial.table(table).delete().eq("id", payload["id"])
        return await execute(builder, action.value, FINANCIAL, table)

    async def create_payment_from_reference(
        self,
        player_ref: UserRef | dict | str,
        payment_payload: dict,
        actor_role: str = "admin",
    ) -> dict:
        """Create a payment for a player, billed to the player's primary parent."""
        player_id = _ref_id(player_ref)
        academies = self._require(ACADEMIES)

        players_table = ACADEMIES_TABLES["players"]
        player = await execute(
            academies.table(players_table).select("*").eq("id", player_id).maybe_single(),
            "select", ACADEMIES, players_table,
        )
        if not player:
            raise SourceNotFoundError("Player", player_id, ACADEMIES)

        links_table = ACADEMIES_TABLES["parent_links"]
        links = await execute(
            academies.table(links_table).select("*").eq("player_id", player_id),
            "select", ACADEMIES, links_table,
        ) or []
        primary = next((link for link in links if link.get("is_primary")), None)
        if primary is None:
            raise PrimaryParentNotFoundError(player_id)

        parents_table = ACADEMIES_TABLES["parents"]
        parent = await execute(
            academies.table(parents_table)
            .select("*").eq("id", primary["parent_id"]).maybe_single(),
            "select", ACADEMIES, parents_table,
        )
        if not parent:
            raise PrimaryParentNotFoundError(player_id)

        financial = self._require(FINANCIAL)
        payments_table = FINANCIAL_TABLES["payments"]
        row = {
            "academy_id": player.get("academy_id"),
            "player_id": player["id"],
            "parent_id": parent["id"],
            **payment_payload,
        }
        inserted = await execute(
            financial.table(payments_table).insert(row),
            "insert", FINANCIAL, payments_table,
        )
        payment = _first_row(inserted) or row

        self._emit_audit(AuditLogEntry(
            namespace=FINANCIAL,
            table_name=payments_table,
            record_id=str(payment["id"]) if payment.get("id") is not None else None,
            action="INSERT",
            new_values=payment,
            actor_id=payment_payload.get("created_by"),
            actor_role=actor_role,
        ))
        return payment

    async def get_player_financials(self, player_id: str) -> list[dict]:
        financial = self._require(FINANCIAL)
        table = FINANCIAL_TABLES["payments"]
        return await execute(
            financial.table(table)
            .select("*").eq("player_id", player_id)
            .order("created_at", desc=True),
            "select", FINANCIAL, table,
        ) or []

    async def get_financial_summary(self, academy_id: str) -> dict:
        users_table = ACADEMIES_TABLES["users"]
        payments_table = FINANCIAL_TABLES["payments"]

        async def users(handle: ClientHandle):
            return await execute(
                handle.table(users_table)
                .select("id, full_name, role").eq("academy_id", academy_id),
                "select", ACADEMIES, users_table,
            )

        async def payments(handle: ClientHandle):
            return await execute(
                handle.table(payments_table)
                .select("amount, status, payment_type, created_at")
                .eq("academy_id", academy_id),
                "select", FINANCIAL, payments_table,
            )

        results = await self.query.run({ACADEMIES: users, FINANCIAL: payments})
        academies = results.get(ACADEMIES)
        financial = results.get(FINANCIAL)
        summary = summarize_financials(
            (academies.data if academies and academies.ok else None) or [],
            (financial.data if financial and financial.ok else None) or [],
        )
        summary["errors"] = {
            ns: str(r.error) for ns, r in results.items() if not r.ok
        }
        return summary

    # ─── Analytics ──────────────────────────────────────────────

    async def get_cross_app_analytics(self, date_range: str | int = "30d") -> dict:
        """Time-bounded slices per namespace; failed namespaces reported, not raised."""
        period = parse_period(date_range)
        since = period.start_date.isoformat()

        async def since_start(handle: ClientHandle, table: str, columns: str):
            return await execute(
                handle.table(table).select(columns).gte("created_at", since),
                "select", handle.namespace, table,
            )

        async def academies(handle: ClientHandle):
            return {
                "new_users": await since_start(
                    handle, ACADEMIES_TABLES["users"], "created_at, role",
                ),
                "events": await since_start(
                    handle, ACADEMIES_TABLES["events"], "created_at, event_type",
                ),
            }

        async def financial(handle: ClientHandle):
            return {
                "payments": await since_start(
                    handle, FINANCIAL_TABLES["payments"],
                    "amount, status, payment_type, created_at",
                ),
                "invoices": await since_start(
                    handle, FINANCIAL_TABLES["invoices"],
                    "total_amount, status, created_at",
                ),
            }

        results = await self.query.run({ACADEMIES: academies, FINANCIAL: financial})
        report: dict[str, Any] = {
            ns: (results[ns].data if ns in results and results[ns].ok else {})
            for ns in (ACADEMIES, FINANCIAL)
        }
        report["period"] = period.as_dict()
        report["errors"] = {
            ns: str(r.error) for ns, r in results.items() if not r.ok
        }
        return report

    aggregate = get_cross_app_analytics

    # ─── Audit ──────────────────────────────────────────────────

    async def write_audit_entry(self, entry: AuditLogEntry) -> Any:
        shared = self._require(SHARED)
        table = SHARED_TABLES["audit_log"]
        return await execute(
            shared.table(table).insert(entry.to_row()), "insert", SHARED, table,
        )

    async def log_cross_app_action(self, entry: AuditLogEntry | dict) -> Any:
        """Best-effort audit write; never raises."""
        try:
            if not isinstance(entry, AuditLogEntry):
                entry = AuditLogEntry.model_validate(entry)
            return await self.write_audit_entry(entry)
        except Exception as e:
            logger.error(f"Audit log failed: {e}", extra={"namespace": SHARED})
            return None

    def _emit_audit(self, entry: AuditLogEntry) -> None:
        if self.queue is None:
            logger.warning(
                "No sync queue bound, audit entry dropped",
                extra={"namespace": entry.namespace},
            )
            return
        try:
            self.queue.enqueue(AuditLog(entry=entry))
        except Exception as e:
            logger.error(f"Failed to queue audit entry: {e}")
