from datetime import timedelta
from decimal import Decimal

import pytest

from ordering.data.backends.memory_backend import InMemoryDataAccess
from ordering.data.interface import StatusConflict
from ordering.data.models import OrderFilters, OrderStatus, PromoCode, PromoType
from ordering.data.util import get_data_access


@pytest.fixture
def store():
    return InMemoryDataAccess()


def test_seeded_with_launch_menu_and_promos(store):
    assert len(store.list_menu_items()) == 29
    assert store.get_menu_item(1).name == "Classic Burger"
    assert store.get_menu_item(1000) is None
    assert [m.name for m in store.list_menu_items(category="drinks")] == [
        "Coke", "Sprite", "Lemonade", "Iced Tea", "Orange Juice",
    ]
    assert store.find_promo("freeship").promo_type == PromoType.DELIVERY
    assert store.find_promo("UNKNOWN") is None


def test_insert_and_get(store, make_order):
    order, items = make_order(quantity=2)
    order_id = store.insert_order(order, items)

    loaded = store.get_order(order_id)
    assert loaded.order_id == order_id == 1
    assert loaded.total_price == order.total_price
    assert [(i.order_id, i.line_number, i.quantity) for i in loaded.items] == [(1, 1, 2)]
    assert store.get_order(2) is None


def test_insert_is_all_or_nothing(store, make_order):
    order, items = make_order()
    with pytest.raises(ValueError):
        store.insert_order(order, [])
    with pytest.raises(KeyError):
        store.insert_order(order, items, promo_id=999)
    assert store.list_orders() == []
    # failed attempts do not burn ids
    assert store.insert_order(order, items) == 1


def test_insert_counts_promo_use(store, make_order):
    order, items = make_order()
    promo = store.find_promo("SAVE20")
    store.insert_order(order, items, promo_id=promo.promo_id)
    assert store.find_promo("SAVE20").times_used == 1


def test_list_filters_and_order(store, make_order):
    for n, name in enumerate(["Avery Khan", "Sam Garcia", "Avery Brown"]):
        store.insert_order(*make_order(name=name, minutes=10 * n))
    store.update_order_status(2, OrderStatus.PREPARING, make_order()[0].created_at)

    assert [o.order_id for o in store.list_orders()] == [3, 2, 1]
    assert [o.order_id for o in store.list_orders(OrderFilters(newest_first=False))] == [1, 2, 3]
    assert [o.order_id for o in store.list_orders(OrderFilters(status="preparing"))] == [2]
    assert [o.order_id for o in store.list_orders(OrderFilters(status=["pending", "ready"]))] == [3, 1]
    assert [o.order_id for o in store.list_orders(OrderFilters(customer_name=" avery "))] == [3, 1]

    first = store.get_order(1).created_at
    window = OrderFilters(start_ts=first + timedelta(minutes=5), end_ts=first + timedelta(minutes=20))
    assert [o.order_id for o in store.list_orders(window)] == [3, 2]
    assert all(o.items for o in store.list_orders())


def test_naive_filter_bounds_are_utc(store, make_order):
    order, items = make_order()
    store.insert_order(order, items)
    naive = order.created_at.replace(tzinfo=None)
    assert len(store.list_orders(OrderFilters(start_ts=naive, end_ts=naive))) == 1


def test_update_status(store, make_order):
    order, items = make_order()
    order_id = store.insert_order(order, items)
    later = order.created_at + timedelta(minutes=3)
    store.update_order_status(order_id, "ready", later)

    loaded = store.get_order(order_id)
    assert loaded.status == OrderStatus.READY
    assert loaded.updated_at == later
    with pytest.raises(KeyError):
        store.update_order_status(42, OrderStatus.READY, later)


def test_promo_usage_and_upsert(store):
    store.increment_promo_usage(store.find_promo("FIRSTORDER").promo_id)
    assert store.find_promo("FIRSTORDER").times_used == 1
    with pytest.raises(KeyError):
        store.increment_promo_usage(404)

    created = store.upsert_promo(
        PromoCode(code="summer10", promo_type=PromoType.PERCENTAGE, discount_percent=Decimal("10"))
    )
    assert created.code == "SUMMER10"
    assert created.promo_id == 6

    replaced = store.upsert_promo(created.model_copy(update={"promo_id": None, "is_active": False}))
    assert replaced.promo_id == 6
    assert store.find_promo("SUMMER10").is_active is False


def test_custom_seed_data():
    store = InMemoryDataAccess(menu_items=[], promo_codes=[])
    assert store.list_menu_items() == []
    assert store.find_promo("SAVE20") is None


def test_factory_builds_memory_backend():
    assert isinstance(get_data_access(), InMemoryDataAccess)
    assert isinstance(get_data_access("memory"), InMemoryDataAccess)
    with pytest.raises(ValueError):
        get_data_access("postgres")


def test_update_status_checks_expected_status(store, make_order):
    order, items = make_order()
    order_id = store.insert_order(order, items)
    later = order.created_at + timedelta(minutes=1)

    store.update_order_status(order_id, OrderStatus.CANCELLED, later, expected_status=OrderStatus.PENDING)
    with pytest.raises(StatusConflict) as exc:
        store.update_order_status(order_id, OrderStatus.PREPARING, later, expected_status="pending")
    assert exc.value.current == OrderStatus.CANCELLED
    assert store.get_order(order_id).status == OrderStatus.CANCELLED
