"""Connection Tester — bounded capability probe plus health-check reachability.

Invariants:
    - Unknown connection name -> ConnectionNotFoundError (caller error, raised)
    - Probe failures never raise: they come back as ConnectionTestResult(success=False)
    - Failure = authentication rejected, timeout, or endpoint unreachable
    - Empty tables, missing tables and permission-denied rows are NOT failures:
      the backend answered and accepted the credentials
    - Both checks honour the same timeout (asyncio.wait_for + httpx timeout)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import urljoin

import httpx

from crossapp.core.connection_types import Connection, ConnectionSpec
from crossapp.core.errors import (
    AuthenticationFailureError, BackendCallError, ConnectionNotFoundError,
)
from crossapp.infrastructure.backend_client import ClientHandle, execute
from crossapp.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


@dataclass
class ConnectionTestResult:
    success: bool
    connection: str
    checks: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None
    elapsed_ms: int = 0

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "connection": self.connection,
            "checks": self.checks,
            "error": self.error,
            "error_code": self.error_code,
            "elapsed_ms": self.elapsed_ms,
        }


class _ProbeFailed(Exception):
    def __init__(self, check: str, outcome: str, code: str, message: str):
        super().__init__(message)
        self.check = check
        self.outcome = outcome
        self.code = code


class ConnectionTester:
    def __init__(
        self,
        registry: ConnectionRegistry,
        probe_table: str = "user_profiles_sa2025",
        default_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.registry = registry
        self.probe_table = probe_table
        self.default_timeout = default_timeout
        self._transport = transport

    async def test(
        self,
        target: str | Mapping[str, Any] | ConnectionSpec,
        timeout: float | None = None,
    ) -> ConnectionTestResult:
        connection, handle = self._resolve(target)
        timeout = timeout or self.default_timeout
        result = ConnectionTestResult(success=False, connection=connection.name)
        started = time.perf_counter()
        try:
            result.checks["probe"] = await self._probe(handle, timeout)
            health_url = connection.endpoints.health_check
            if health_url:
                result.checks["health_check"] = await self._health_check(
                    connection.url, health_url, timeout,
                )
            result.success = True
        except _ProbeFailed as e:
            result.checks[e.check] = e.outcome
            result.error = str(e)
            result.error_code = e.code
        result.elapsed_ms = int((time.perf_counter() - started) * 1000)

        log = logger.info if result.success else logger.warning
        log(
            f"Connection test {'passed' if result.success else 'failed'}",
            extra={
                "connection": connection.name,
                "namespace": connection.namespace,
                "error_code": result.error_code,
                "elapsed_ms": result.elapsed_ms,
            },
        )
        return result

    def _resolve(
        self, target: str | Mapping[str, Any] | ConnectionSpec,
    ) -> tuple[Connection, ClientHandle]:
        if isinstance(target, str):
            connection = self.registry.connection(target)
            handle = self.registry.get(target)
            if connection is None or handle is None:
                raise ConnectionNotFoundError(target)
            return connection, handle
        return self.registry.transient_handle(target)

    async def _probe(self, handle: ClientHandle, timeout: float) -> str:
        try:
            await asyncio.wait_for(
                execute(
                    handle.table(self.probe_table).select("id").limit(1),
                    "probe", handle.namespace, self.probe_table,
                ),
                timeout,
            )
        except asyncio.TimeoutError:
            raise _ProbeFailed(
                "probe", "timeout", "TIMEOUT",
                f"Probe did not answer within {timeout}s",
            )
        except AuthenticationFailureError as e:
            raise _ProbeFailed("probe", "unauthorized", e.code, e.message)
        except BackendCallError as e:
            if e.is_auth_failure:
                raise _ProbeFailed(
                    "probe", "unauthorized", "AUTHENTICATION_FAILURE", e.message,
                )
            if e.transport or e.operation == "connect":
                raise _ProbeFailed("probe", "unreachable", e.code, e.message)
            return "reachable"
        return "ok"

    async def _health_check(self, base_url: str, path: str, timeout: float) -> str:
        try:
            url = urljoin(base_url + "/", path)
            async with httpx.AsyncClient(
                timeout=timeout, transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException:
            raise _ProbeFailed(
                "health_check", "timeout", "TIMEOUT",
                f"Health check did not answer within {timeout}s",
            )
        except (ValueError, httpx.InvalidURL) as e:
            raise _ProbeFailed(
                "health_check", "unreachable", "INVALID_URL",
                f"Health check URL is invalid: {e}",
            )
        except httpx.HTTPError as e:
            raise _ProbeFailed(
                "health_check", "unreachable", "UNREACHABLE",
                f"Health check unreachable: {e}",
            )
        if response.status_code in (401, 403):
            raise _ProbeFailed(
                "health_check", "unauthorized", "AUTHENTICATION_FAILURE",
                f"Health check rejected credentials ({response.status_code})",
            )
        if response.status_code >= 500:
            raise _ProbeFailed(
                "health_check", "unhealthy", "UNHEALTHY",
                f"Health check returned {response.status_code}",
            )
        return "ok"
