from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ordering.config import set_config_for_test
from ordering.logging import AppLogger
from ordering.data.models import CustomerInfo, DeliveryAddress, Order, OrderItem, OrderType
from ordering.data.seed_data import main as seed_main

BASE_TIME = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def default_config():
    set_config_for_test(log_level="WARNING")
    AppLogger()
    yield
    set_config_for_test()
    AppLogger()


@pytest.fixture
def make_order():
    """Build an unsaved (order, items) pair: ``minutes`` after BASE_TIME, one 8.99 burger line."""
    def _make(name="Avery Khan", minutes=0, quantity=1, order_type=OrderType.PICKUP, **fields):
        items = [
            OrderItem(
                menu_item_id=1,
                name="Classic Burger",
                unit_price=Decimal("8.99"),
                quantity=quantity,
                subtotal=Decimal("8.99") * quantity,
            )
        ]
        subtotal = Decimal("8.99") * quantity
        tax = (subtotal * Decimal("0.08")).quantize(Decimal("0.01"))
        fee = Decimal("2.99") if order_type == OrderType.DELIVERY else Decimal("0.00")
        ts = BASE_TIME + timedelta(minutes=minutes)
        order = Order(
            customer=CustomerInfo(name=name, email="avery@example.com"),
            order_type=order_type,
            subtotal=subtotal,
            tax_amount=tax,
            delivery_fee=fee,
            total_price=subtotal + tax + fee,
            delivery_address=(
                DeliveryAddress(street="9 Elm St", city="Springfield", state="IL", zip_code="06001")
                if order_type == OrderType.DELIVERY else None
            ),
            created_at=ts,
            updated_at=ts,
            **fields,
        )
        return order, items
    return _make


@pytest.fixture
def csv_dir(tmp_path):
    """A CSV data folder with the launch menu and promo codes and no orders."""
    assert seed_main(["--output-dir", str(tmp_path), "--orders", "0"]) == 0
    return tmp_path
