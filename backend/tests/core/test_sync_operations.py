"""Sync Operations — discriminated parsing and audit row mapping.

Tests:
    - SYNC_OPERATION_ADAPTER picks the variant from "kind"
    - Defaults: user_sync targets financial from academies; ids are unique
    - Unknown kinds are rejected
    - AuditLogEntry.to_row() maps onto cross_app_audit_log columns
"""

import pytest
from pydantic import ValidationError

from crossapp.core.domain_types import FinancialAction
from crossapp.core.sync_operations import (
    SYNC_OPERATION_ADAPTER, AuditLog, AuditLogEntry, FinancialSync, UserSync,
)


def test_user_sync_defaults():
    op = SYNC_OPERATION_ADAPTER.validate_python(
        {"kind": "user_sync", "user_ref": {"id": "u1"}},
    )
    assert isinstance(op, UserSync)
    assert op.source_namespace == "academies"
    assert op.target_namespaces == ["financial"]
    assert op.user_ref.id == "u1"


def test_financial_sync_parses_action():
    op = SYNC_OPERATION_ADAPTER.validate_python(
        {"kind": "financial_sync", "action": "update", "payload": {"id": "p1"}},
    )
    assert isinstance(op, FinancialSync)
    assert op.action is FinancialAction.UPDATE


def test_audit_log_variant():
    op = SYNC_OPERATION_ADAPTER.validate_python({
        "kind": "audit_log",
        "entry": {"namespace": "financial", "table_name": "payments_sa2025", "action": "INSERT"},
    })
    assert isinstance(op, AuditLog)


def test_unknown_kind_rejected():
    with pytest.raises(ValidationError):
        SYNC_OPERATION_ADAPTER.validate_python({"kind": "teleport", "payload": {}})


def test_operation_ids_are_unique():
    a = UserSync(user_ref={"id": "u1"})
    b = UserSync(user_ref={"id": "u1"})
    assert a.id != b.id


def test_audit_entry_row_columns():
    entry = AuditLogEntry(
        namespace="financial", table_name="payments_sa2025", record_id="pay1",
        action="INSERT", new_values={"amount": "10.00"}, actor_id="admin1",
        actor_role="admin",
    )
    row = entry.to_row()
    assert row["app_schema"] == "financial"
    assert row["user_id"] == "admin1"
    assert row["user_role"] == "admin"
    assert row["new_values"] == {"amount": "10.00"}
    assert row["old_values"] is None
    assert "created_at" in row
