"""CrossApp Context — wiring from settings and the collaborator-facing facade."""

from pydantic import SecretStr

from crossapp.config import Settings
from crossapp.core.domain_types import TieBreak
from crossapp.services.context import build_context
from tests.fakes import DEFAULT_URL


async def test_default_connection_serves_unregistered_namespaces(ctx):
    handle = ctx.get_schema_client("financial")
    assert handle.url == DEFAULT_URL
    assert handle.fallback is True
    assert ctx.get_client().namespace == "academies"


async def test_facade_register_list_remove(ctx):
    ctx.register_connection("c1", {"url": "https://a.test", "namespace": "academies"})
    assert [c["name"] for c in ctx.list_connections()] == ["c1"]
    assert ctx.get_schema_client("academies").connection_name == "c1"
    assert ctx.remove_connection("c1") is True
    assert ctx.list_connections() == []


async def test_cross_schema_query_through_facade(ctx):
    async def namespace_of(handle):
        return handle.namespace

    results = await ctx.cross_schema_query({"academies": namespace_of, "shared": namespace_of})
    assert {ns: r.data for ns, r in results.items()} == {
        "academies": "academies", "shared": "shared",
    }


def test_settings_drive_tie_break_and_retry(factory):
    settings = Settings(
        default_backend_url="",
        schema_tie_break="most_recently_activated",
        audit_max_attempts=4,
        connection_secrets={"connections/seeded": SecretStr("from-env")},
    )
    ctx = build_context(settings, client_factory=factory)

    assert ctx.router.tie_break is TieBreak.MOST_RECENTLY_ACTIVATED
    assert ctx.registry.default_handle is None
    assert ctx.queue._policies["audit_log"].max_attempts == 4

    ctx.register_connection("seeded", {"url": "https://s.test"})
    assert ctx.get_client("seeded").has_credentials
