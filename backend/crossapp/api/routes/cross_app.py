"""Cross-App Routes — user propagation, payments, summaries and analytics.

Invariants:
    - Direct calls: caller-visible failures (404 source, 422 no primary parent,
      503 namespace unavailable) come back as the CrossAppError envelope
    - Analytics and summaries answer 200 with partial data plus an errors map
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from crossapp.api.dependencies import get_context
from crossapp.core.sync_operations import UserRef
from crossapp.schemas.cross_app import PaymentCreate, UserSyncRequest
from crossapp.services.context import CrossAppContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cross-app", tags=["cross-app"])


@router.post("/users/{user_id}/sync")
async def sync_user(
    user_id: str,
    body: UserSyncRequest | None = None,
    ctx: CrossAppContext = Depends(get_context),
):
    """Copy the user's reference into each target namespace if absent."""
    body = body or UserSyncRequest()
    result = await ctx.sync_user(
        UserRef(id=user_id), body.source_namespace, body.target_namespaces,
    )
    return result.as_dict()


@router.post("/players/{player_id}/payments", status_code=status.HTTP_201_CREATED)
async def create_payment(
    player_id: str,
    body: PaymentCreate,
    ctx: CrossAppContext = Depends(get_context),
):
    """Create a payment billed to the player's primary parent."""
    return await ctx.service.create_payment_from_reference(
        UserRef(id=player_id), body.model_dump(mode="json"), body.actor_role,
    )


@router.get("/players/{player_id}/payments")
async def player_payments(player_id: str, ctx: CrossAppContext = Depends(get_context)):
    return {"payments": await ctx.service.get_player_financials(player_id)}


@router.get("/academies/{academy_id}/financial-summary")
async def financial_summary(academy_id: str, ctx: CrossAppContext = Depends(get_context)):
    summary = await ctx.get_financial_summary(academy_id)
    for key in ("total_revenue", "pending_payments"):
        summary[key] = str(summary[key])
    return summary


@router.get("/analytics")
async def analytics(
    date_range: str = Query("30d", alias="range", pattern=r"^\d{1,4}d?$"),
    ctx: CrossAppContext = Depends(get_context),
):
    return await ctx.get_cross_app_analytics(date_range)
