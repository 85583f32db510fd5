"""Connection Tester — probe plus health check, failures reported not raised.

Tests:
    - Unknown connection name raises ConnectionNotFoundError
    - Reachable backend with a healthy endpoint passes both checks
    - Unreachable health-check endpoint returns success=False without raising
    - Rejected credentials and missing credentials fail as unauthorized
    - Missing table or permission-denied rows still count as reachable
    - A probe slower than the timeout fails with TIMEOUT
    - Unsaved configurations are tested without being registered
"""

import httpx
import pytest

from crossapp.core.errors import ConnectionNotFoundError
from crossapp.infrastructure.secret_store import SecretStore
from crossapp.services.connection_registry import ConnectionRegistry
from crossapp.services.connection_tester import ConnectionTester
from tests.fakes import FakeAPIError

PROBE = "user_profiles_sa2025"
URL = "https://academies.test"


@pytest.fixture
def registry(factory):
    return ConnectionRegistry(factory, SecretStore())


def _tester(registry, handler=None):
    transport = httpx.MockTransport(handler) if handler else None
    return ConnectionTester(registry, probe_table=PROBE, default_timeout=1.0, transport=transport)


def _register(registry, **extra):
    registry.register("c1", {
        "url": URL, "namespace": "academies", "credential": "k",
        "endpoints": {"health_check": "/health"}, **extra,
    })


async def test_unknown_name_raises(registry):
    with pytest.raises(ConnectionNotFoundError):
        await _tester(registry).test("missing")


async def test_reachable_and_healthy(registry):
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json={"status": "ok"})

    _register(registry)
    result = await _tester(registry, handler).test("c1")

    assert result.success is True
    assert result.checks == {"probe": "ok", "health_check": "ok"}
    assert seen == [f"{URL}/health"]


async def test_unreachable_health_check_is_a_failed_result(registry):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    _register(registry)
    result = await _tester(registry, handler).test("c1")

    assert result.success is False
    assert result.checks["health_check"] == "unreachable"
    assert result.error_code == "UNREACHABLE"
    assert result.as_dict()["connection"] == "c1"


async def test_health_check_rejecting_credentials_fails(registry):
    _register(registry)
    result = await _tester(registry, lambda request: httpx.Response(401)).test("c1")
    assert result.success is False
    assert result.checks["health_check"] == "unauthorized"


async def test_rejected_credentials_fail_probe(registry, factory):
    _register(registry)
    factory.backend(URL, "academies").fail_on(PROBE, FakeAPIError("Invalid API key", "PGRST301"))

    result = await _tester(registry).test("c1")

    assert result.success is False
    assert result.checks == {"probe": "unauthorized"}
    assert result.error_code == "AUTHENTICATION_FAILURE"


async def test_connection_without_credentials_fails(registry):
    registry.register("c1", {"url": URL, "namespace": "academies"})
    result = await _tester(registry).test("c1")
    assert result.success is False
    assert result.checks == {"probe": "unauthorized"}


@pytest.mark.parametrize("error", [
    FakeAPIError('relation "user_profiles_sa2025" does not exist', "42P01"),
    FakeAPIError("permission denied for table user_profiles_sa2025", "42501"),
])
async def test_missing_table_or_permission_denied_is_reachable(registry, factory, error):
    registry.register("c1", {"url": URL, "namespace": "academies", "credential": "k"})
    factory.backend(URL, "academies").fail_on(PROBE, error)

    result = await _tester(registry).test("c1")

    assert result.success is True
    assert result.checks == {"probe": "reachable"}


async def test_slow_probe_times_out(registry, factory):
    registry.register("c1", {"url": URL, "namespace": "academies", "credential": "k"})
    factory.backend(URL, "academies").delay = 0.5

    result = await _tester(registry).test("c1", timeout=0.05)

    assert result.success is False
    assert result.error_code == "TIMEOUT"
    assert result.checks == {"probe": "timeout"}


async def test_unsaved_config_not_registered(registry):
    result = await _tester(registry).test(
        {"url": "https://financial.test", "namespace": "financial", "credential": "k"},
    )
    assert result.success is True
    assert result.connection == "unsaved"
    assert len(registry) == 0


async def test_malformed_health_check_url_is_a_failed_result(registry):
    registry.register("c1", {
        "url": URL, "namespace": "academies", "credential": "k",
        "endpoints": {"health_check": "http://[bad-host/health"},
    })

    result = await _tester(registry).test("c1", timeout=1)

    assert result.success is False
    assert result.checks == {"probe": "ok", "health_check": "unreachable"}
    assert result.error_code == "INVALID_URL"


async def test_client_construction_failure_is_unreachable():
    def broken_factory(url, credential, options):
        raise RuntimeError("could not build client")

    registry = ConnectionRegistry(broken_factory, SecretStore())
    registry.register("c1", {"url": URL, "namespace": "academies", "credential": "k"})

    result = await _tester(registry).test("c1")

    assert result.success is False
    assert result.checks == {"probe": "unreachable"}
