"""Sync Operations — the tagged union of deferred cross-domain work.

Invariants:
    - Every operation has an opaque id and an enqueued_at timestamp
    - kind is the discriminant: user_sync | financial_sync | audit_log
    - AuditLogEntry is write-only; nothing in this package reads it back

Design Decisions:
    - Pydantic discriminated union: the HTTP boundary and the queue share one
      parser (SYNC_OPERATION_ADAPTER) instead of a hand-written switch
"""

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from crossapp.core.domain_types import FinancialAction


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserRef(BaseModel):
    id: str


class AuditLogEntry(BaseModel):
    namespace: str
    table_name: str
    record_id: str | None = None
    action: str
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    actor_id: str | None = None
    actor_role: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime = Field(default_factory=_now)

    def to_row(self) -> dict:
        """Row shape of the cross_app_audit_log table."""
        return {
            "app_schema": self.namespace,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "action": self.action,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "user_id": self.actor_id,
            "user_role": self.actor_role,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.timestamp.isoformat(),
        }


class _Operation(BaseModel):
    id: str = Field(default_factory=_new_id)
    enqueued_at: datetime = Field(default_factory=_now)


class UserSync(_Operation):
    kind: Literal["user_sync"] = "user_sync"
    source_namespace: str = "academies"
    target_namespaces: list[str] = Field(default_factory=lambda: ["financial"])
    user_ref: UserRef


class FinancialSync(_Operation):
    kind: Literal["financial_sync"] = "financial_sync"
    action: FinancialAction = FinancialAction.CREATE
    payload: dict[str, Any]


class AuditLog(_Operation):
    kind: Literal["audit_log"] = "audit_log"
    entry: AuditLogEntry


SyncOperation = Annotated[
    Union[UserSync, FinancialSync, AuditLog], Field(discriminator="kind"),
]

SYNC_OPERATION_ADAPTER: TypeAdapter = TypeAdapter(SyncOperation)
