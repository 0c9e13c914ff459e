from __future__ import annotations

from pydantic import BaseModel, Field


class PaymentResult(BaseModel):
    """What the payment processor reported for a charge."""
    transaction_id: str = Field(description="Processor transaction identifier")
    status: str = Field(description="Processor status, e.g. COMPLETED")
    card_brand: str = Field(default="UNKNOWN", description="Card brand")
    last4: str = Field(default="****", description="Last four card digits")
    processor: str = Field(description="Which processor handled the charge")
