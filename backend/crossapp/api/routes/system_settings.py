"""System Settings Routes — category/key configuration values with built-in defaults."""

import logging

from fastapi import APIRouter, Depends, Path

from crossapp.api.dependencies import get_context
from crossapp.schemas.system_settings import SettingUpdate
from crossapp.services.context import CrossAppContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/settings", tags=["settings"])

_IDENTIFIER = r"^[a-z][a-z0-9_]{0,62}$"


@router.get("")
async def get_system_settings(ctx: CrossAppContext = Depends(get_context)):
    return ctx.admin.system_settings()


@router.put("/{category}/{key}")
async def update_system_setting(
    body: SettingUpdate,
    category: str = Path(pattern=_IDENTIFIER),
    key: str = Path(pattern=_IDENTIFIER),
    ctx: CrossAppContext = Depends(get_context),
):
    return await ctx.admin.update_system_setting(
        category, key, body.value, body.description,
    )
