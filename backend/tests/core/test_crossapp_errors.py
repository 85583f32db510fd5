"""Error hierarchy — envelope shape, HTTP status mapping and retry classification.

Tests:
    - to_response() carries code, category, severity and context
    - user_message overrides the technical message in the envelope
    - BackendCallError: auth failures are detected and never retryable
    - Only transport errors and 5xx responses are retryable
"""

from crossapp.core.errors import (
    BackendCallError, ConnectionNotFoundError, ErrorContext, NamespaceUnavailableError,
    PrimaryParentNotFoundError, SourceNotFoundError,
)


def test_connection_not_found_envelope():
    err = ConnectionNotFoundError("c9")
    body = err.to_response()["error"]
    assert err.http_status == 404
    assert body["code"] == "CONNECTION_NOT_FOUND"
    assert body["category"] == "resource_not_found"
    assert body["context"]["connection_name"] == "c9"
    assert "c9" in body["message"]


def test_user_message_overrides_message():
    err = SourceNotFoundError(
        "User", "u1", "academies", ErrorContext(user_message="User missing"),
    )
    assert err.to_response()["error"]["message"] == "User missing"
    assert err.context.namespace == "academies"


def test_status_codes_of_domain_errors():
    assert PrimaryParentNotFoundError("p1").http_status == 422
    assert NamespaceUnavailableError("financial").http_status == 503


def test_auth_failure_detected_from_status_code_and_message():
    assert BackendCallError("nope", "select", status=401).is_auth_failure
    assert BackendCallError("x", "select", backend_code="PGRST301").is_auth_failure
    assert BackendCallError("Invalid API key", "select").is_auth_failure
    assert BackendCallError("JWT expired", "select").is_auth_failure
    assert not BackendCallError("relation does not exist", "select", backend_code="42P01").is_auth_failure


def test_only_transient_failures_are_retryable():
    assert BackendCallError("reset", "insert", transport=True).retryable
    assert BackendCallError("bad gateway", "insert", status=502).retryable
    assert not BackendCallError("conflict", "insert", status=409).retryable
    assert not BackendCallError("unknown", "insert").retryable
    assert not BackendCallError("unauthorized", "insert", status=401, transport=True).retryable
