"""Order pricing.

The same calculator produces the customer's checkout preview and the
authoritative total stored with the order, so it must stay a pure
function of its inputs. Intermediate sums keep full precision; each
component is rounded half-up to cents once, and the total is derived from
the rounded components so the stored breakdown always adds up.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from ordering.config import AppConfig, get_config
from ordering.core.errors import InvalidLineItem
from ordering.core.money import ZERO, Number, quantize_money, to_decimal
from ordering.core.promo import compute_discount
from ordering.data.models import CartLineItem, OrderItem, OrderType, PromoCode, PromoType
from ordering.logging import get_logger

logger = get_logger(__name__)

LineLike = Union[CartLineItem, OrderItem]


class PriceBreakdown(BaseModel):
    """Rounded monetary components of an order."""
    subtotal: Decimal = Field(description="Sum of unit price x quantity")
    tax: Decimal = Field(description="subtotal x tax rate")
    delivery_fee: Decimal = Field(description="Flat fee unless waived")
    discount: Decimal = Field(description="Promo discount, never above subtotal")
    total: Decimal = Field(description="subtotal + tax + delivery_fee - discount, floored at 0")


class PricingCalculator:
    def __init__(
        self,
        tax_rate: Number = Decimal("0.08"),
        free_delivery_threshold: Number = Decimal("20.00"),
        standard_delivery_fee: Number = Decimal("2.99"),
        max_item_quantity: int = 99,
    ) -> None:
        self.tax_rate = to_decimal(tax_rate)
        self.free_delivery_threshold = to_decimal(free_delivery_threshold)
        self.standard_delivery_fee = to_decimal(standard_delivery_fee)
        self.max_item_quantity = max_item_quantity

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> "PricingCalculator":
        config = config or get_config()
        return cls(
            tax_rate=config.tax_rate,
            free_delivery_threshold=config.free_delivery_threshold,
            standard_delivery_fee=config.standard_delivery_fee,
            max_item_quantity=config.max_item_quantity,
        )

    def line_subtotal(self, item: LineLike) -> Decimal:
        """unit price x quantity, after checking both are in range."""
        item_id = getattr(item, "item_id", None) or getattr(item, "menu_item_id", None)
        quantity = item.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidLineItem("Quantity must be a whole number", item_id=item_id)
        if not 1 <= quantity <= self.max_item_quantity:
            raise InvalidLineItem(
                f"Quantity must be between 1 and {self.max_item_quantity}", item_id=item_id
            )
        unit_price = to_decimal(item.unit_price)
        if not unit_price.is_finite() or unit_price < 0:
            raise InvalidLineItem("Invalid price", item_id=item_id)
        return unit_price * quantity

    def subtotal(self, line_items: Iterable[LineLike]) -> Decimal:
        return sum((self.line_subtotal(item) for item in line_items), ZERO)

    def delivery_fee(self, subtotal: Decimal, order_type: OrderType, promo: Optional[PromoCode] = None) -> Decimal:
        if OrderType(order_type) == OrderType.PICKUP:
            return ZERO
        if subtotal > self.free_delivery_threshold:
            return ZERO
        if promo is not None and promo.promo_type == PromoType.DELIVERY:
            return ZERO
        return self.standard_delivery_fee

    def compute(
        self,
        line_items: Iterable[LineLike],
        order_type: OrderType,
        promo: Optional[PromoCode] = None,
    ) -> PriceBreakdown:
        """Price a cart.

        ``promo`` must already have passed PromoEngine validation; only the
        discount formula is applied here.
        """
        line_items = list(line_items)
        subtotal = self.subtotal(line_items)
        tax = subtotal * self.tax_rate
        fee = self.delivery_fee(subtotal, order_type, promo)
        discount = compute_discount(promo, subtotal) if promo is not None else ZERO

        subtotal_r = quantize_money(subtotal)
        tax_r = quantize_money(tax)
        fee_r = quantize_money(fee)
        discount_r = min(quantize_money(discount), subtotal_r)
        total = max(ZERO, subtotal_r + tax_r + fee_r - discount_r)

        breakdown = PriceBreakdown(
            subtotal=subtotal_r,
            tax=tax_r,
            delivery_fee=fee_r,
            discount=discount_r,
            total=quantize_money(total),
        )
        logger.debug(f"Priced {len(line_items)} lines ({OrderType(order_type).value}): {breakdown}")
        return breakdown
