# ordering/data/interface.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from .models import (
    MenuItem,
    Order,
    OrderFilters,
    OrderItem,
    OrderStatus,
    PromoCode,
)


# ---- Persistence protocol ----

class StatusConflict(Exception):
    """The stored status changed between reading an order and writing its new status."""

    def __init__(self, order_id: int, current: OrderStatus, expected: OrderStatus) -> None:
        self.order_id = order_id
        self.current = OrderStatus(current)
        self.expected = OrderStatus(expected)
        super().__init__(f"Order {order_id} is {self.current.value}, expected {self.expected.value}")


class OrderStore(Protocol):
    """
    Backend-agnostic persistence contract for the ordering core.

    IMPORTANT:
    - insert_order MUST be all-or-nothing: either the order and every item
      are stored, or nothing is.
    - Methods raise on storage errors. They never substitute sample data.
    """

    def insert_order(self, order: Order, items: List[OrderItem], promo_id: Optional[int] = None) -> int:
        """Store an order with its items and return the new order id.

        When ``promo_id`` is given, that promo's usage counter is incremented
        in the same unit of work.
        """
        ...

    def get_order(self, order_id: int) -> Optional[Order]:
        """Load an order with its items, or None."""
        ...

    def list_orders(self, filters: Optional[OrderFilters] = None) -> List[Order]:
        """List orders (with items) matching the filters."""
        ...

    def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        updated_at: datetime,
        expected_status: Optional[OrderStatus] = None,
    ) -> None:
        """Persist a status change.

        When ``expected_status`` is given the write only happens if the stored
        status still equals it; otherwise StatusConflict is raised and nothing
        changes. Raises KeyError if the order does not exist.
        """
        ...

    # Promo codes
    def find_promo(self, code: str) -> Optional[PromoCode]:
        """Exact lookup by normalized (upper-case) code. No eligibility filtering."""
        ...

    def increment_promo_usage(self, promo_id: int) -> None:
        """times_used += 1."""
        ...

    def upsert_promo(self, promo: PromoCode) -> PromoCode:
        """Create or replace a promo code by code; returns it with promo_id set."""
        ...


# ---- Catalog protocol ----

class MenuCatalog(Protocol):
    """Menu lookups used to validate and snapshot cart lines."""

    def get_menu_item(self, item_id: int) -> Optional[MenuItem]:
        ...

    def list_menu_items(self, category: Optional[str] = None) -> List[MenuItem]:
        ...
