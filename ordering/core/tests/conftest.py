from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ordering.config import set_config_for_test
from ordering.logging import AppLogger
from ordering.core.order_service import OrderService
from ordering.core.payments import SandboxPaymentGateway
from ordering.core.promo import PromoEngine
from ordering.data.backends.memory_backend import InMemoryDataAccess
from ordering.data.models import MenuItem

NOW = datetime(2025, 3, 14, 18, 30, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True)
def default_config():
    set_config_for_test(log_level="WARNING")
    AppLogger()
    yield
    set_config_for_test()
    AppLogger()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    menu = [
        MenuItem(item_id=1, name="Classic Burger", price=Decimal("8.99"), category="Burgers"),
        MenuItem(item_id=2, name="Coke", price=Decimal("2.99"), category="Drinks"),
        MenuItem(item_id=3, name="Margherita Pizza", price=Decimal("12.99"), category="Pizzas"),
        MenuItem(item_id=4, name="Side Salad", price=Decimal("5.00"), category="Salads"),
        MenuItem(item_id=5, name="Seasonal Pie", price=Decimal("6.50"), category="Desserts", is_available=False),
    ]
    # promo codes come from the launch defaults
    return InMemoryDataAccess(menu_items=menu)


@pytest.fixture
def gateway():
    return SandboxPaymentGateway(token_prefix="TEST_")


@pytest.fixture
def promo_engine(store, clock):
    return PromoEngine(store, clock=clock)


@pytest.fixture
def service(store, gateway, clock):
    return OrderService(store, store, payment_gateway=gateway, clock=clock)
