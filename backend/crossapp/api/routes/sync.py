"""Sync Routes — enqueue deferred cross-domain operations and inspect the queue.

Invariants:
    - POST /sync accepts any SyncOperation variant (discriminated on "kind") and
      answers 202 with the operation id; the work runs after the response
    - Enqueue never waits for execution; failures surface only in status/dead letters
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from crossapp.api.dependencies import get_context
from crossapp.core.sync_operations import SYNC_OPERATION_ADAPTER
from crossapp.services.context import CrossAppContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def queue_sync(
    body: dict[str, Any] = Body(...),
    ctx: CrossAppContext = Depends(get_context),
):
    try:
        operation = SYNC_OPERATION_ADAPTER.validate_python(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors())
    operation_id = ctx.queue_sync(operation)
    return {
        "operation_id": operation_id,
        "kind": operation.kind,
        "pending": ctx.queue.pending,
    }


@router.get("/status")
async def queue_status(ctx: CrossAppContext = Depends(get_context)):
    return ctx.queue.status()


@router.get("/dead-letters")
async def dead_letters(ctx: CrossAppContext = Depends(get_context)):
    """Operations that exhausted their retries, oldest first."""
    return {"dead_letters": [d.as_dict() for d in ctx.queue.dead_letters]}
