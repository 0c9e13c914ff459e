from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class CartLineItem(BaseModel):
    """Client-side cart line. Deliberately unconstrained: the pricing calculator validates it."""
    item_id: int = Field(description="Menu item identifier")
    name: str = Field(default="", description="Item name as shown in the cart")
    unit_price: Decimal = Field(description="Unit price as shown in the cart")
    quantity: int = Field(description="Quantity in the cart")


class OrderItem(BaseModel):
    """Point-in-time snapshot of a menu item within a placed order."""
    order_id: Optional[int] = Field(default=None, description="Order this item belongs to")
    line_number: int = Field(default=1, ge=1, description="Line number within the order")
    menu_item_id: int = Field(description="Menu item identifier")
    name: str = Field(description="Menu item name at time of order")
    unit_price: Decimal = Field(ge=0, description="Unit price at time of order")
    quantity: int = Field(ge=1, le=99, description="Quantity ordered")
    subtotal: Decimal = Field(ge=0, description="unit_price * quantity")

    @model_validator(mode="after")
    def _check_subtotal(self) -> "OrderItem":
        if self.subtotal != self.unit_price * self.quantity:
            raise ValueError(
                f"subtotal {self.subtotal} does not equal {self.unit_price} x {self.quantity}"
            )
        return self
