"""
Pydantic schemas for credit endpoints.
"""
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.services.credit_service import CreditSnapshot


class CreditBalanceResponse(BaseModel):
    """Balance snapshot returned by every ledger operation."""
    user_id: str
    credits_total: float
    credits_used: float
    credits_remaining: float

    @classmethod
    def from_snapshot(cls, snapshot: CreditSnapshot) -> "CreditBalanceResponse":
        return cls(
            user_id=snapshot.user_id,
            credits_total=float(snapshot.credits_total),
            credits_used=float(snapshot.credits_used),
            credits_remaining=float(snapshot.credits_remaining),
        )


class InsufficientCreditsResponse(BaseModel):
    """Body of a 402 Payment Required response."""
    ok: bool = False
    error: str = "INSUFFICIENT_CREDITS"
    message: Optional[str] = None
    ledger: str
    credits_needed: float
    credits_remaining: float
    shortfall: float


class AdminGrantRequest(BaseModel):
    """Schema for an admin bonus-credit grant."""
    user_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Credits to add (max 2 decimal places)")
    ledger: Literal["ai", "automation"] = "ai"
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator("amount")
    @classmethod
    def two_decimal_places(cls, value: Decimal) -> Decimal:
        if value != value.quantize(Decimal("0.01")):
            raise ValueError("amount supports at most 2 decimal places")
        return value


class AdminResetRequest(BaseModel):
    """Schema for an admin credit reset."""
    user_id: str = Field(..., min_length=1)
    ledger: Literal["ai", "automation"] = "ai"
    reason: Optional[str] = Field(None, max_length=255)
