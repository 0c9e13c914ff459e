from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ordering.core.clock import as_utc

from ..defaults import default_menu_items, default_promo_codes
from ..interface import MenuCatalog, OrderStore, StatusConflict
from ..models import MenuItem, Order, OrderFilters, OrderItem, OrderStatus, PromoCode


def _matches(order: Order, filters: OrderFilters) -> bool:
    statuses = filters.status_values()
    if statuses is not None and order.status.value not in statuses:
        return False
    if filters.customer_name and filters.customer_name.strip().lower() not in order.customer.name.lower():
        return False
    if filters.start_ts is not None and as_utc(order.created_at) < as_utc(filters.start_ts):
        return False
    if filters.end_ts is not None and as_utc(order.created_at) > as_utc(filters.end_ts):
        return False
    return True


class InMemoryDataAccess(OrderStore, MenuCatalog):
    """
    Process-local implementation for tests and local development.
    - Selected explicitly at startup; never used as a fallback for another backend.
    - A single lock serializes writes, which makes insert_order all-or-nothing.
    """

    def __init__(
        self,
        menu_items: Optional[Iterable[MenuItem]] = None,
        promo_codes: Optional[Iterable[PromoCode]] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._menu: Dict[int, MenuItem] = {}
        self._promos: Dict[str, PromoCode] = {}
        self._orders: Dict[int, Order] = {}
        self._items: Dict[int, List[OrderItem]] = {}
        self._next_order_id = 1
        self._next_promo_id = 1

        for item in default_menu_items() if menu_items is None else menu_items:
            self._menu[item.item_id] = item
        for promo in default_promo_codes() if promo_codes is None else promo_codes:
            self.upsert_promo(promo)

    # ---------- catalog ----------

    def get_menu_item(self, item_id: int) -> Optional[MenuItem]:
        return self._menu.get(item_id)

    def list_menu_items(self, category: Optional[str] = None) -> List[MenuItem]:
        items = sorted(self._menu.values(), key=lambda m: (m.category, m.item_id))
        if category:
            items = [m for m in items if m.category.lower() == category.lower()]
        return items

    # ---------- orders ----------

    def insert_order(self, order: Order, items: List[OrderItem], promo_id: Optional[int] = None) -> int:
        if not items:
            raise ValueError("An order must contain at least one item")
        with self._lock:
            promo = None
            if promo_id is not None:
                promo = next((p for p in self._promos.values() if p.promo_id == promo_id), None)
                if promo is None:
                    raise KeyError(f"Promo {promo_id} not found")

            order_id = self._next_order_id
            stored_items = [
                item.model_copy(update={"order_id": order_id, "line_number": n})
                for n, item in enumerate(items, start=1)
            ]
            stored_order = order.model_copy(update={"order_id": order_id, "items": []})

            self._orders[order_id] = stored_order
            self._items[order_id] = stored_items
            if promo is not None:
                self._promos[promo.code] = promo.model_copy(update={"times_used": promo.times_used + 1})
            self._next_order_id += 1
            return order_id

    def get_order(self, order_id: int) -> Optional[Order]:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return None
            return order.model_copy(update={"items": list(self._items.get(order_id, []))})

    def list_orders(self, filters: Optional[OrderFilters] = None) -> List[Order]:
        filters = filters or OrderFilters()
        with self._lock:
            orders = [
                o.model_copy(update={"items": list(self._items.get(o.order_id, []))})
                for o in self._orders.values()
                if _matches(o, filters)
            ]
        orders.sort(key=lambda o: (o.created_at, o.order_id), reverse=filters.newest_first)
        return orders

    def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        updated_at: datetime,
        expected_status: Optional[OrderStatus] = None,
    ) -> None:
        with self._lock:
            if order_id not in self._orders:
                raise KeyError(f"Order {order_id} not found")
            current = self._orders[order_id].status
            if expected_status is not None and current != OrderStatus(expected_status):
                raise StatusConflict(order_id, current, expected_status)
            self._orders[order_id] = self._orders[order_id].model_copy(
                update={"status": OrderStatus(status), "updated_at": updated_at}
            )

    # ---------- promo codes ----------

    def find_promo(self, code: str) -> Optional[PromoCode]:
        return self._promos.get(code.strip().upper())

    def increment_promo_usage(self, promo_id: int) -> None:
        with self._lock:
            for code, promo in self._promos.items():
                if promo.promo_id == promo_id:
                    self._promos[code] = promo.model_copy(update={"times_used": promo.times_used + 1})
                    return
        raise KeyError(f"Promo {promo_id} not found")

    def upsert_promo(self, promo: PromoCode) -> PromoCode:
        with self._lock:
            code = promo.code.strip().upper()
            existing = self._promos.get(code)
            promo_id = promo.promo_id or (existing.promo_id if existing else None)
            if promo_id is None:
                promo_id = max([p.promo_id or 0 for p in self._promos.values()] + [self._next_promo_id - 1]) + 1
            self._next_promo_id = max(self._next_promo_id, promo_id + 1)
            stored = promo.model_copy(update={"code": code, "promo_id": promo_id})
            self._promos[code] = stored
            return stored
