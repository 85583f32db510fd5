"""Cross-Domain Query — fan-out of per-namespace queries with isolated failures.

Invariants:
    - Every namespace's query runs concurrently with the others
    - A failing namespace yields NamespaceResult(error=...) and never affects siblings
    - Unresolvable namespaces are omitted from the result (unconfigured, not an error)
    - run() never raises for query failures
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from crossapp.infrastructure.backend_client import ClientHandle
from crossapp.services.schema_router import SchemaRouter

logger = logging.getLogger(__name__)

QueryFn = Callable[[ClientHandle], Awaitable[Any]]


@dataclass
class NamespaceResult:
    data: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict:
        if self.error is not None:
            return {"error": str(self.error)}
        return {"data": self.data}


class CrossDomainQuery:
    def __init__(self, router: SchemaRouter):
        self.router = router

    async def run(self, queries: Mapping[str, QueryFn]) -> dict[str, NamespaceResult]:
        resolved: list[tuple[str, ClientHandle, QueryFn]] = []
        for namespace, query in queries.items():
            handle = self.router.resolve(namespace)
            if handle is None:
                continue
            resolved.append((namespace, handle, query))

        outcomes = await asyncio.gather(
            *(self._run_one(ns, handle, query) for ns, handle, query in resolved),
        )
        return {ns: outcome for (ns, _, _), outcome in zip(resolved, outcomes)}

    async def _run_one(
        self, namespace: str, handle: ClientHandle, query: QueryFn,
    ) -> NamespaceResult:
        try:
            return NamespaceResult(data=await query(handle))
        except Exception as e:
            logger.error(
                f"Error in {namespace} namespace query: {e}",
                extra={"namespace": namespace},
            )
            return NamespaceResult(error=e)
