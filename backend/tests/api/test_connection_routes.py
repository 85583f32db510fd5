"""Connection routes — CRUD, secret-free responses, error envelopes, connectivity tests."""

import httpx


async def _create(client, name="academies-db", **extra):
    body = {
        "name": name, "url": "https://a.test", "namespace": "academies",
        "credential": "s3cret", **extra,
    }
    return await client.post("/api/v1/connections", json=body)


async def test_create_and_list_never_echo_credential(client):
    res = await _create(client)

    assert res.status_code == 201
    assert res.json()["has_credentials"] is True
    assert "s3cret" not in res.text
    assert "credential_ref" not in res.json()

    listing = await client.get("/api/v1/connections", params={"namespace": "academies"})
    assert [c["name"] for c in listing.json()["connections"]] == ["academies-db"]
    assert "s3cret" not in listing.text


async def test_create_invalid_body_is_validation_envelope(client):
    res = await client.post("/api/v1/connections", json={"name": "x"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_create_bad_url_is_invalid_connection(client):
    res = await _create(client, url="ftp://a.test")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_CONNECTION"


async def test_duplicate_create_rejected(client):
    await _create(client)
    res = await _create(client)
    assert res.status_code == 400


async def test_get_unknown_is_404_envelope(client):
    res = await client.get("/api/v1/connections/nope")
    assert res.status_code == 404
    body = res.json()["error"]
    assert body["code"] == "CONNECTION_NOT_FOUND"
    assert body["context"]["connection_name"] == "nope"


async def test_update_and_delete(client):
    await _create(client)

    res = await client.patch(
        "/api/v1/connections/academies-db", json={"status": "inactive"},
    )
    assert res.status_code == 200
    assert res.json()["status"] == "inactive"
    assert res.json()["url"] == "https://a.test"

    res = await client.delete("/api/v1/connections/academies-db")
    assert res.status_code == 204
    assert (await client.get("/api/v1/connections/academies-db")).status_code == 404


async def test_connection_test_reports_failure_as_200(client, api_ctx, factory):
    await _create(client, endpoints={"health_check": "/health"})

    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    api_ctx.tester._transport = httpx.MockTransport(refuse)
    res = await client.post("/api/v1/connections/academies-db/test", params={"timeout": 2})

    assert res.status_code == 200
    assert res.json()["success"] is False
    assert res.json()["checks"] == {"probe": "ok", "health_check": "unreachable"}


async def test_unsaved_connection_test(client, api_ctx):
    res = await client.post("/api/v1/connections/test", json={
        "url": "https://f.test", "namespace": "financial", "credential": "k",
    })
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert api_ctx.list_connections() == []


async def test_test_unknown_connection_is_404(client):
    res = await client.post("/api/v1/connections/nope/test")
    assert res.status_code == 404
