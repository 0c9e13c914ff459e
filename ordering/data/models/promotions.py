from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PromoType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    DELIVERY = "delivery"
    BUY2GET1 = "buy2get1"


class PromoCode(BaseModel):
    """Administrator-managed promo code."""
    promo_id: Optional[int] = Field(default=None, description="Store-assigned identifier")
    code: str = Field(min_length=1, max_length=50, description="Unique code, stored upper-case")
    description: str = Field(default="", description="Customer-facing description")
    promo_type: PromoType = Field(description="How the discount is computed")
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100, description="Percent off for percentage promos")
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, description="Flat amount for fixed/delivery/buy2get1 promos")
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0, description="Minimum subtotal (inclusive)")
    max_discount: Optional[Decimal] = Field(default=None, ge=0, description="Cap on the computed discount")
    is_active: bool = Field(default=True, description="Administrative on/off switch")
    valid_from: Optional[datetime] = Field(default=None, description="Start of the validity window")
    valid_until: Optional[datetime] = Field(default=None, description="End of the validity window (exclusive)")
    usage_limit: Optional[int] = Field(default=None, ge=0, description="Maximum number of redemptions")
    times_used: int = Field(default=0, ge=0, description="Running redemption counter")


class PromoResult(BaseModel):
    """Outcome of a successful promo validation."""
    code: str = Field(description="Normalized promo code")
    description: str = Field(description="Customer-facing description")
    promo_type: PromoType = Field(description="Promo type")
    discount_amount: Decimal = Field(description="Discount for the validated subtotal, rounded to cents")
    promo: PromoCode = Field(description="The promo record as validated")
