"""Connection Routes — admin CRUD and connectivity tests for named backend connections.

Invariants:
    - Responses carry Connection.public_view(): never a credential, never credential_ref
    - Unknown names → 404 CONNECTION_NOT_FOUND envelope (ConnectionNotFoundError)
    - A failed connectivity test is a 200 with success=false, not an error status
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from crossapp.api.dependencies import get_context
from crossapp.core.domain_types import ConnectionStatus
from crossapp.core.errors import ConnectionNotFoundError
from crossapp.schemas.connection import (
    ConnectionCreate, ConnectionTestRequest, ConnectionUpdate,
)
from crossapp.services.context import CrossAppContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/connections", tags=["connections"])


@router.get("")
async def list_connections(
    namespace: str | None = Query(None, max_length=63),
    status_filter: ConnectionStatus | None = Query(None, alias="status"),
    ctx: CrossAppContext = Depends(get_context),
):
    """Registered connections in registration order."""
    return {
        "connections": ctx.admin.connections(
            namespace=namespace, status=status_filter,
        ),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_connection(
    body: ConnectionCreate, ctx: CrossAppContext = Depends(get_context),
):
    return await ctx.admin.create_connection(body.model_dump())


@router.post("/test")
async def test_unsaved_connection(
    body: ConnectionTestRequest, ctx: CrossAppContext = Depends(get_context),
):
    """Probe a configuration without registering it."""
    result = await ctx.admin.test_connection(
        body.model_dump(exclude={"timeout"}), body.timeout,
    )
    return result.as_dict()


@router.get("/{name}")
async def get_connection(name: str, ctx: CrossAppContext = Depends(get_context)):
    if name not in ctx.registry:
        raise ConnectionNotFoundError(name)
    return next(c for c in ctx.admin.connections() if c["name"] == name)


@router.patch("/{name}")
async def update_connection(
    name: str,
    body: ConnectionUpdate,
    ctx: CrossAppContext = Depends(get_context),
):
    return await ctx.admin.update_connection(
        name, body.model_dump(exclude_unset=True),
    )


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_connection(name: str, ctx: CrossAppContext = Depends(get_context)):
    await ctx.admin.delete_connection(name)


@router.post("/{name}/test")
async def test_connection(
    name: str,
    timeout: float | None = Query(None, gt=0, le=120),
    ctx: CrossAppContext = Depends(get_context),
):
    result = await ctx.admin.test_connection(name, timeout)
    return result.as_dict()
