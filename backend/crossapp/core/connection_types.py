"""Connection Types — the stored Connection record and the registration input.

Invariants:
    - Connection never holds a secret value, only credential_ref (a SecretStore key)
    - ConnectionSpec.credential is SecretStr: repr() and model_dump() mask it
    - url must be http(s); name must be non-blank
    - public_view() is the only shape handed to listings and logs

Design Decisions:
    - Two models (input vs stored): the plaintext credential cannot reach the
      registry's record because the stored type has no field for it
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, SecretStr, field_validator

from crossapp.core.domain_types import ConnectionStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


def credential_ref_for(name: str) -> str:
    """SecretStore key under which a connection's credential lives."""
    return f"connections/{name}"


class Endpoints(BaseModel):
    """Optional HTTP endpoints exposed next to the data API."""
    health_check: str | None = None
    auth: str | None = None
    data: str | None = None

    @field_validator("health_check", "auth", "data", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ConnectionOptions(BaseModel):
    tls_enabled: bool = True
    timeout_seconds: int = Field(30, ge=1, le=600)
    pool_size: int = Field(10, ge=1, le=200)


class _ConnectionFields(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    namespace: str = Field("public", min_length=1, max_length=63)
    url: str
    host: str | None = None
    port: int | None = Field(None, ge=1, le=65535)
    database_name: str | None = None
    username: str | None = None
    endpoints: Endpoints = Field(default_factory=Endpoints)
    config: ConnectionOptions = Field(default_factory=ConnectionOptions)
    status: ConnectionStatus = ConnectionStatus.ACTIVE

    @field_validator("name", "namespace")
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("url")
    @classmethod
    def require_http_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v.rstrip("/")


class ConnectionSpec(_ConnectionFields):
    """Registration input; may carry a plaintext credential exactly once."""
    credential: SecretStr | None = None
    credential_ref: str | None = None


class Connection(_ConnectionFields):
    """Stored connection record. No secret material."""
    credential_ref: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    activated_at: datetime | None = None

    def public_view(self, has_client: bool) -> dict:
        data = self.model_dump(mode="json", exclude={"credential_ref"})
        data["has_credentials"] = self.credential_ref is not None
        data["has_client"] = has_client
        return data
