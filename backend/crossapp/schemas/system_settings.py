"""System Settings Schemas."""

from typing import Any

from pydantic import BaseModel, Field


class SettingUpdate(BaseModel):
    value: Any
    description: str | None = Field(None, max_length=500)
