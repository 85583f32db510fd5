"""Backend Client — handle secrecy, lazy construction and error mapping of execute()."""

import httpx
import pytest
from pydantic import SecretStr

from crossapp.core.errors import BackendCallError
from crossapp.infrastructure.backend_client import ClientHandle, execute
from tests.fakes import FakeAPIError


class _Builder:
    def __init__(self, outcome):
        self._outcome = outcome

    async def execute(self):
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome


def _handle(factory, credential="s3cret"):
    return ClientHandle(
        "c1", "https://x.test", "academies",
        SecretStr(credential) if credential else None, factory,
    )


def test_repr_and_config_never_show_credential(factory):
    handle = _handle(factory)
    assert "s3cret" not in repr(handle)
    assert "s3cret" not in str(handle.config)


def test_client_built_once_on_first_use(factory):
    handle = _handle(factory)
    assert factory.created == []
    handle.table("a")
    handle.table("b")
    assert len(factory.created) == 1


def test_factory_failure_wrapped(factory):
    def broken(url, credential, options):
        raise ValueError("Invalid URL")

    with pytest.raises(BackendCallError) as exc_info:
        _handle(broken).table("a")
    assert exc_info.value.operation == "connect"


def test_with_namespace_is_a_fallback_on_same_backend(factory):
    other = _handle(factory).with_namespace("financial")
    assert other.fallback is True
    assert other.url == "https://x.test"
    assert other.namespace == "financial"


async def test_transport_errors_are_retryable():
    with pytest.raises(BackendCallError) as exc_info:
        await execute(_Builder(httpx.ConnectTimeout("timed out")), "select", "academies", "t")
    assert exc_info.value.transport is True
    assert exc_info.value.retryable is True
    assert exc_info.value.context.namespace == "academies"


async def test_backend_errors_carry_code_and_status():
    with pytest.raises(BackendCallError) as exc_info:
        await execute(_Builder(FakeAPIError("duplicate key", "23505", status_code=409)), "insert")
    err = exc_info.value
    assert err.backend_code == "23505"
    assert err.status == 409
    assert err.retryable is False


async def test_none_response_is_none():
    assert await execute(_Builder(None), "select") is None
