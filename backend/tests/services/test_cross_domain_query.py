"""Cross-Domain Query — concurrent fan-out with per-namespace failure isolation."""

import asyncio

import pytest

from crossapp.infrastructure.secret_store import SecretStore
from crossapp.services.connection_registry import ConnectionRegistry
from crossapp.services.cross_domain_query import CrossDomainQuery
from crossapp.services.schema_router import SchemaRouter


@pytest.fixture
def query(factory):
    registry = ConnectionRegistry(factory, SecretStore())
    registry.register("a", {"url": "https://a", "namespace": "academies", "credential": "k"})
    registry.register("f", {"url": "https://f", "namespace": "financial", "credential": "k"})
    return CrossDomainQuery(SchemaRouter(registry))


async def test_failing_namespace_does_not_affect_sibling(query):
    async def throwing(handle):
        raise RuntimeError("academies down")

    async def ok(handle):
        return [{"id": 1}]

    results = await query.run({"academies": throwing, "financial": ok})

    assert results["academies"].as_dict() == {"error": "academies down"}
    assert results["financial"].as_dict() == {"data": [{"id": 1}]}


async def test_queries_run_concurrently(query):
    started = {"academies": asyncio.Event(), "financial": asyncio.Event()}

    def waiting_for(other):
        async def fn(handle):
            started[handle.namespace].set()
            await started[other].wait()
            return handle.namespace
        return fn

    results = await asyncio.wait_for(
        query.run({
            "academies": waiting_for("financial"),
            "financial": waiting_for("academies"),
        }),
        timeout=1,
    )
    assert results["academies"].data == "academies"
    assert results["financial"].data == "financial"


async def test_unresolvable_namespace_omitted(query):
    async def ok(handle):
        return 1

    results = await query.run({"academies": ok, "inventory": ok})
    assert set(results) == {"academies"}
