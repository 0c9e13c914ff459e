from .data_filters import OrderFilters

from .menu_items import MenuItem
from .order_items import CartLineItem, OrderItem
from .orders import (
    Actor,
    CustomerInfo,
    DeliveryAddress,
    Order,
    OrderStatus,
    OrderType,
    PaymentMethod,
)
from .promotions import PromoCode, PromoResult, PromoType
from .payments import PaymentResult
from .analytics import (
    BusinessAnalytics,
    DailyCount,
    DailyRevenue,
    HourlyCount,
    TopItem,
)

__all__ = [
    # Filter classes
    "OrderFilters",
    # Catalog
    "MenuItem",
    # Orders
    "CartLineItem",
    "OrderItem",
    "Actor",
    "CustomerInfo",
    "DeliveryAddress",
    "Order",
    "OrderStatus",
    "OrderType",
    "PaymentMethod",
    # Promotions
    "PromoCode",
    "PromoResult",
    "PromoType",
    # Payments
    "PaymentResult",
    # Analytics response models
    "BusinessAnalytics",
    "DailyCount",
    "DailyRevenue",
    "HourlyCount",
    "TopItem",
]
