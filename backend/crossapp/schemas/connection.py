"""Connection Schemas — admin request bodies for the connection endpoints.

Invariants:
    - ConnectionCreate.credential is SecretStr; it is handed to the registry once and
      never echoed back (responses use Connection.public_view())
    - ConnectionUpdate is sparse: only fields the caller sent are merged
    - Connection names are path parameters on update and cannot be renamed
"""

from pydantic import BaseModel, Field, SecretStr

from crossapp.core.connection_types import ConnectionOptions, Endpoints
from crossapp.core.domain_types import ConnectionStatus


class ConnectionCreate(BaseModel):
    """New connection: same fields as a stored Connection plus the credential."""
    name: str = Field(min_length=1, max_length=200)
    namespace: str = Field("public", min_length=1, max_length=63)
    url: str = Field(min_length=1, max_length=2048)
    host: str | None = None
    port: int | None = Field(None, ge=1, le=65535)
    database_name: str | None = None
    username: str | None = None
    credential: SecretStr | None = None
    endpoints: Endpoints = Field(default_factory=Endpoints)
    config: ConnectionOptions = Field(default_factory=ConnectionOptions)
    status: ConnectionStatus = ConnectionStatus.ACTIVE


class ConnectionUpdate(BaseModel):
    namespace: str | None = Field(None, min_length=1, max_length=63)
    url: str | None = Field(None, min_length=1, max_length=2048)
    host: str | None = None
    port: int | None = Field(None, ge=1, le=65535)
    database_name: str | None = None
    username: str | None = None
    credential: SecretStr | None = None
    endpoints: Endpoints | None = None
    config: ConnectionOptions | None = None
    status: ConnectionStatus | None = None


class ConnectionTestRequest(ConnectionCreate):
    """Test an unsaved configuration; nothing is registered."""
    name: str = Field("unsaved", min_length=1, max_length=200)
    timeout: float | None = Field(None, gt=0, le=120)
