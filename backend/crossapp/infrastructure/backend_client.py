"""Backend Client — client handles over the supabase async SDK, with error mapping.

Invariants:
    - A ClientHandle never exposes its credential (config, repr, logs)
    - The SDK client is built on first use, once per handle
    - Every query-builder failure surfaces as BackendCallError (core/errors.py)
    - Transport failures (connect, read, timeout) are flagged retryable

Design Decisions:
    - Factory injected into handles: tests pass an in-memory fake with the
      same builder surface, production passes create_supabase_client
    - Namespace is the PostgREST schema of the SDK client
"""

import logging
from typing import Any

import httpx
from pydantic import SecretStr
from supabase import AsyncClient
from supabase.lib.client_options import AsyncClientOptions

from crossapp.core.errors import (
    AuthenticationFailureError, BackendCallError, CrossAppError, ErrorContext,
)
from crossapp.core.repository_protocols import (
    BackendClient, ClientFactory, QueryBuilder,
)

logger = logging.getLogger(__name__)


def create_supabase_client(
    url: str, credential: str, options: dict[str, Any],
) -> BackendClient:
    """Default client factory: supabase AsyncClient bound to one schema."""
    client_options = AsyncClientOptions(
        schema=options.get("schema", "public"),
        auto_refresh_token=True,
        persist_session=True,
        postgrest_client_timeout=options.get("timeout_seconds", 30),
    )
    return AsyncClient(url, credential, client_options)


class ClientHandle:
    """Live, lazily-connected client for one connection and namespace."""

    def __init__(
        self,
        connection_name: str,
        url: str,
        namespace: str,
        credential: SecretStr | None,
        factory: ClientFactory,
        options: dict[str, Any] | None = None,
        fallback: bool = False,
    ):
        self.connection_name = connection_name
        self.url = url
        self.namespace = namespace
        self.fallback = fallback
        self._credential = credential
        self._factory = factory
        self._options = dict(options or {})
        self._client: BackendClient | None = None

    @property
    def has_credentials(self) -> bool:
        return self._credential is not None

    @property
    def config(self) -> dict[str, Any]:
        """Secret-free description of what this handle is bound to."""
        return {
            "connection": self.connection_name,
            "url": self.url,
            "namespace": self.namespace,
            "fallback": self.fallback,
            "has_credentials": self.has_credentials,
            **self._options,
        }

    @property
    def client(self) -> BackendClient:
        if self._client is None:
            if self._credential is None:
                raise AuthenticationFailureError(
                    f"Connection '{self.connection_name}' has no credentials",
                    ErrorContext(
                        namespace=self.namespace,
                        connection_name=self.connection_name,
                    ),
                )
            try:
                self._client = self._factory(
                    self.url,
                    self._credential.get_secret_value(),
                    {"schema": self.namespace, **self._options},
                )
            except Exception as e:
                raise BackendCallError(
                    str(e), "connect",
                    context=ErrorContext(
                        namespace=self.namespace,
                        connection_name=self.connection_name,
                    ),
                ) from e
        return self._client

    def with_namespace(self, namespace: str) -> "ClientHandle":
        """Throwaway handle on the same backend with another schema."""
        return ClientHandle(
            self.connection_name, self.url, namespace, self._credential,
            self._factory, self._options, fallback=True,
        )

    def table(self, table_name: str) -> QueryBuilder:
        return self.client.table(table_name)

    def rpc(self, fn: str, params: dict | None = None) -> QueryBuilder:
        return self.client.rpc(fn, params or {})

    def __repr__(self) -> str:
        return (
            f"ClientHandle(connection={self.connection_name!r}, "
            f"url={self.url!r}, namespace={self.namespace!r})"
        )


def _status_of(exc: Exception) -> int | None:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code.isdigit() and len(code) == 3:
        return int(code)
    return None


async def execute(
    builder: QueryBuilder,
    operation: str,
    namespace: str | None = None,
    table: str | None = None,
) -> Any:
    """Await a built query and return its data, mapping failures."""
    context = ErrorContext(
        namespace=namespace,
        debug_info={"table": table} if table else None,
    )
    try:
        response = await builder.execute()
    except CrossAppError:
        raise
    except httpx.TransportError as e:
        raise BackendCallError(
            str(e) or type(e).__name__, operation, transport=True,
            context=context,
        ) from e
    except Exception as e:
        code = getattr(e, "code", None)
        message = getattr(e, "message", None) or str(e)
        logger.debug(
            f"Backend {operation} on {table} failed: {message}",
            extra={"namespace": namespace},
        )
        raise BackendCallError(
            str(message), operation, status=_status_of(e),
            backend_code=str(code) if code is not None else None,
            context=context,
        ) from e
    # maybe_single() returns None instead of a response when no row matches
    if response is None:
        return None
    return response.data
