"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ConnectionName and Namespace wrap str, never raw strings in signatures
    - All valid states encoded as Enums, no raw string matching
    - Table names live here only; services never spell a table literal

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ConnectionName = NewType("ConnectionName", str)
Namespace = NewType("Namespace", str)

DEFAULT_CONNECTION = ConnectionName("default")

ACADEMIES = Namespace("academies")
FINANCIAL = Namespace("financial")
SHARED = Namespace("shared")


# ─── Enums ───────────────────────────────────────────────────────

class ConnectionStatus(str, Enum):
    """Connection lifecycle: only ACTIVE connections win schema routing."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    TESTING = "testing"


class TieBreak(str, Enum):
    """Policy when several active connections declare the same namespace."""
    FIRST_REGISTERED = "first_registered"
    MOST_RECENTLY_ACTIVATED = "most_recently_activated"


class SyncKind(str, Enum):
    """SyncOperation discriminant."""
    USER_SYNC = "user_sync"
    FINANCIAL_SYNC = "financial_sync"
    AUDIT_LOG = "audit_log"


class FinancialAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class QueueState(str, Enum):
    """SyncQueue state machine: IDLE -> DRAINING -> IDLE."""
    IDLE = "idle"
    DRAINING = "draining"


# ─── Namespace tables ────────────────────────────────────────────

ACADEMIES_TABLES = {
    "users": "user_profiles_sa2025",
    "teams": "teams_sa2025",
    "players": "player_profiles_sa2025",
    "coaches": "coach_profiles_sa2025",
    "parents": "parent_profiles_sa2025",
    "parent_links": "player_parent_links_sa2025",
    "events": "events_sa2025",
    "products": "products_sa2025",
    "categories": "product_categories_sa2025",
    "locations": "locations_sa2025",
}

FINANCIAL_TABLES = {
    "payments": "payments_sa2025",
    "invoices": "invoices_sa2025",
    "transactions": "transactions_sa2025",
    "fee_structures": "fee_structures_sa2025",
    "user_references": "user_references",
}

SHARED_TABLES = {
    "connections": "database_connections",
    "settings": "system_settings",
    "audit_log": "cross_app_audit_log",
}

# Reference rows written by user propagation, keyed by the source user id
USER_REFERENCES_TABLE = "user_references"
USER_REFERENCE_KEY = "academy_user_id"
