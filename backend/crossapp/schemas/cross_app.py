"""Cross-App Schemas — request bodies for user propagation and payment creation.

Invariants:
    - PaymentCreate.amount is a positive Decimal, serialized as a string
    - Unknown payment fields pass through to the payments table unchanged
"""

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from crossapp.core.domain_types import ACADEMIES, FINANCIAL


class UserSyncRequest(BaseModel):
    source_namespace: str = ACADEMIES
    target_namespaces: list[str] = Field(default_factory=lambda: [FINANCIAL], min_length=1)


class PaymentCreate(BaseModel):
    """Payment billed to the player's primary parent."""
    model_config = ConfigDict(extra="allow")

    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    currency: str = Field("EUR", min_length=3, max_length=3)
    payment_type: str = Field(min_length=1, max_length=50)
    status: Literal["pending", "completed", "failed", "refunded"] = "pending"
    description: str | None = Field(None, max_length=500)
    due_date: date | None = None
    created_by: str | None = None
    actor_role: str = Field("admin", exclude=True)
