from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .order_items import OrderItem


class OrderType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"


class Actor(str, Enum):
    """Who is asking for a status change."""
    CUSTOMER = "customer"
    KITCHEN = "kitchen"
    BUSINESS = "business"
    SYSTEM = "system"


class CustomerInfo(BaseModel):
    """Customer identity captured at checkout."""
    name: str = Field(max_length=100, description="Customer display name")
    email: Optional[str] = Field(default=None, max_length=255, description="Contact email")
    phone: Optional[str] = Field(default=None, max_length=20, description="Contact phone number")

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value


class DeliveryAddress(BaseModel):
    """Where a delivery order goes."""
    street: str = Field(min_length=1, description="Street address")
    city: str = Field(min_length=1, description="City")
    state: str = Field(min_length=1, description="State or province")
    zip_code: str = Field(min_length=5, max_length=10, description="Postal code")


class Order(BaseModel):
    """A placed order with its monetary breakdown and line items."""
    order_id: Optional[int] = Field(default=None, description="Identifier assigned at creation")
    customer: CustomerInfo = Field(description="Customer identity")
    order_type: OrderType = Field(description="Delivery or pickup")
    status: OrderStatus = Field(default=OrderStatus.PENDING, description="Lifecycle status")
    subtotal: Decimal = Field(ge=0, description="Sum of line subtotals")
    tax_amount: Decimal = Field(ge=0, description="Tax on the subtotal")
    delivery_fee: Decimal = Field(ge=0, description="Delivery fee (0 for pickup)")
    discount_amount: Decimal = Field(default=Decimal("0.00"), ge=0, description="Promo discount applied")
    total_price: Decimal = Field(ge=0, description="subtotal + tax + delivery fee - discount")
    promo_code: Optional[str] = Field(default=None, description="Normalized promo code applied, if any")
    notes: Optional[str] = Field(default=None, max_length=500, description="Special instructions")
    delivery_address: Optional[DeliveryAddress] = Field(default=None, description="Required iff order_type is delivery")
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH, description="Cash or card")
    payment_transaction_id: Optional[str] = Field(default=None, description="Processor transaction id for card orders")
    card_brand: Optional[str] = Field(default=None, description="Card brand reported by the processor")
    card_last4: Optional[str] = Field(default=None, description="Last four card digits reported by the processor")
    items: List[OrderItem] = Field(default_factory=list, description="Owned line items")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last status change timestamp")

    @model_validator(mode="after")
    def _check_totals(self) -> "Order":
        if self.discount_amount > self.subtotal:
            raise ValueError("discount_amount cannot exceed subtotal")
        expected = max(
            Decimal("0"),
            self.subtotal + self.tax_amount + self.delivery_fee - self.discount_amount,
        )
        if self.total_price != expected:
            raise ValueError(f"total_price {self.total_price} does not match components ({expected})")
        if self.order_type == OrderType.DELIVERY and self.delivery_address is None:
            raise ValueError("delivery orders require a delivery address")
        if self.order_type == OrderType.PICKUP and self.delivery_address is not None:
            raise ValueError("pickup orders cannot carry a delivery address")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)
