"""Error Hierarchy — typed, categorized exceptions for all cross-app failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) abort an operation before any write
    - Infrastructure errors (500-level) wrap backend and persistence failures
    - to_response() produces the REST envelope
    - No credential or internal detail leaked in user-facing messages

Design Decisions:
    - Single hierarchy with CrossAppError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    AUTHENTICATION = "authentication"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    namespace: str | None = None
    connection_name: str | None = None
    operation_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class CrossAppError(Exception):
    """Base exception for all cross-app errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "namespace": self.context.namespace,
                    "connection_name": self.context.connection_name,
                    "operation_id": self.context.operation_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidConnectionError(CrossAppError):
    """Connection configuration failed validation."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_CONNECTION", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class InvalidOperationError(CrossAppError):
    """Sync operation or action is not recognized."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_OPERATION", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class ConnectionNotFoundError(CrossAppError):
    """Named connection is not registered."""
    def __init__(self, connection_name: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.connection_name = connection_name
        super().__init__(
            f"Connection '{connection_name}' not found",
            "CONNECTION_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )


class SourceNotFoundError(CrossAppError):
    """Canonical record missing from the source namespace."""
    def __init__(
        self, resource_type: str, resource_id: str, namespace: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.namespace = namespace
        super().__init__(
            f"{resource_type} '{resource_id}' not found in '{namespace}'",
            "SOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class PrimaryParentNotFoundError(CrossAppError):
    """Player has no parent link flagged as primary."""
    def __init__(self, player_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Primary parent not found for player '{player_id}'",
            "PRIMARY_PARENT_NOT_FOUND", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 422,
        )
        self.player_id = player_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class NamespaceUnavailableError(CrossAppError):
    """No connection (and no default) can serve the namespace."""
    def __init__(self, namespace: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.namespace = namespace
        super().__init__(
            f"Namespace '{namespace}' is not configured",
            "NAMESPACE_UNAVAILABLE", ErrorCategory.UNAVAILABLE,
            ErrorSeverity.ERROR, ctx, 503,
        )


class AuthenticationFailureError(CrossAppError):
    """Backend rejected the connection's credentials."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_FAILURE", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 502,
        )


class BackendCallError(CrossAppError):
    """A query-builder call against a backend failed."""

    _AUTH_CODES = frozenset({"PGRST301", "PGRST302", "401"})
    _AUTH_MARKERS = ("jwt", "invalid api key", "apikey", "unauthorized")

    def __init__(
        self,
        message: str,
        operation: str,
        status: int | None = None,
        backend_code: str | None = None,
        transport: bool = False,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Backend {operation} failed: {message}",
            "BACKEND_CALL_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.operation = operation
        self.status = status
        self.backend_code = backend_code
        self.transport = transport

    @property
    def is_auth_failure(self) -> bool:
        if self.status == 401 or self.backend_code in self._AUTH_CODES:
            return True
        lowered = self.message.lower()
        return any(marker in lowered for marker in self._AUTH_MARKERS)

    @property
    def retryable(self) -> bool:
        if self.is_auth_failure:
            return False
        return self.transport or (self.status is not None and self.status >= 500)


class DatabaseError(CrossAppError):
    """Persistence store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
