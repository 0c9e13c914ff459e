"""Business dashboard aggregates and the order export.

Computed client-side with pandas over the orders returned by the store, so
every backend gets the same numbers. Money columns hold Decimal values
(object dtype) and are summed exactly, then rounded once to cents.
"""
from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

import pandas as pd

from ordering.config import get_config
from ordering.core.clock import as_utc, utcnow
from ordering.core.money import ZERO, quantize_money
from ordering.data.models import (
    BusinessAnalytics,
    DailyCount,
    DailyRevenue,
    HourlyCount,
    Order,
    OrderStatus,
    TopItem,
)

ORDER_FRAME_COLUMNS = [
    "order_id", "status", "order_type", "payment_method",
    "customer_name", "customer_email", "total", "created_at",
]
ITEM_FRAME_COLUMNS = ["order_id", "name", "quantity", "revenue"]

# frame column -> export header
EXPORT_COLUMNS = {
    "order_id": "Order ID",
    "created_at": "Date",
    "order_type": "Type",
    "status": "Status",
    "total": "Amount",
    "payment_method": "Payment Method",
    "customer_name": "Customer Name",
    "customer_email": "Customer Email",
}


def _total(values) -> Decimal:
    return quantize_money(sum(values, ZERO))


def _days_back(now: datetime, days: int) -> pd.Timestamp:
    """Midnight UTC ``days`` calendar days before ``now``."""
    return pd.Timestamp(datetime.combine(now.date() - timedelta(days=days), time.min, tzinfo=timezone.utc))


def orders_frame(orders: Iterable[Order]) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Flatten orders and their items into two frames."""
    orders = list(orders)
    order_rows = [
        {
            "order_id": o.order_id,
            "status": OrderStatus(o.status).value,
            "order_type": o.order_type.value,
            "payment_method": o.payment_method.value,
            "customer_name": o.customer.name,
            "customer_email": o.customer.email,
            "total": o.total_price,
            "created_at": as_utc(o.created_at),
        }
        for o in orders
    ]
    item_rows = [
        {"order_id": o.order_id, "name": i.name, "quantity": i.quantity, "revenue": i.subtotal}
        for o in orders
        for i in o.items
    ]
    orders_df = pd.DataFrame(order_rows, columns=ORDER_FRAME_COLUMNS)
    orders_df["created_at"] = pd.to_datetime(orders_df["created_at"], utc=True)
    return orders_df, pd.DataFrame(item_rows, columns=ITEM_FRAME_COLUMNS)


def compute_business_analytics(
    orders: Iterable[Order],
    now: Optional[datetime] = None,
    top_n: Optional[int] = None,
) -> BusinessAnalytics:
    now = as_utc(now or utcnow())
    top_n = top_n or get_config().top_items_limit
    orders_df, items_df = orders_frame(orders)

    by_status = {str(k): int(v) for k, v in orders_df.groupby("status").size().items()}

    live = orders_df[orders_df["status"] != OrderStatus.CANCELLED.value]
    ts = live["created_at"]

    iso = ts.dt.isocalendar()
    now_iso = now.isocalendar()
    today = ts.dt.date == now.date()
    this_week = (iso["year"] == now_iso[0]) & (iso["week"] == now_iso[1])
    this_month = (ts.dt.year == now.year) & (ts.dt.month == now.month)

    # Top sellers
    sold = items_df[items_df["order_id"].isin(live["order_id"])]
    top = (
        sold.groupby("name", as_index=False)
            .agg(quantity=("quantity", "sum"), revenue=("revenue", _total))
            .sort_values(["quantity", "revenue"], ascending=False)
            .head(top_n)
    )

    # Last 7 calendar days
    recent = live[ts >= _days_back(now, 7)]
    daily = (
        recent.assign(day=recent["created_at"].dt.date)
              .groupby("day", as_index=False)
              .agg(count=("order_id", "count"), amount=("total", _total))
              .sort_values("day")
    )

    # Peak hours over the last 30 days
    month_window = live[ts >= pd.Timestamp(now - timedelta(days=30))]
    hours = (
        month_window.assign(hour=month_window["created_at"].dt.hour)
                    .groupby("hour", as_index=False)
                    .agg(orders=("order_id", "count"))
                    .sort_values("hour")
    )

    total_orders = int(len(live))
    revenue = sum(live["total"], ZERO)
    return BusinessAnalytics(
        total_orders=total_orders,
        total_revenue=quantize_money(revenue),
        average_order_value=quantize_money(revenue / total_orders) if total_orders else ZERO,
        orders_today=int(today.sum()),
        revenue_today=_total(live.loc[today, "total"]),
        orders_this_week=int(this_week.sum()),
        revenue_this_week=_total(live.loc[this_week, "total"]),
        orders_this_month=int(this_month.sum()),
        revenue_this_month=_total(live.loc[this_month, "total"]),
        top_items=[
            TopItem(name=r["name"], quantity=int(r["quantity"]), revenue=r["revenue"])
            for r in top.to_dict("records")
        ],
        orders_by_day=[DailyCount(day=r["day"], count=int(r["count"])) for r in daily.to_dict("records")],
        revenue_by_day=[DailyRevenue(day=r["day"], amount=r["amount"]) for r in daily.to_dict("records")],
        orders_by_status=by_status,
        peak_hours=[HourlyCount(hour=f"{int(r['hour']):02d}", orders=int(r["orders"])) for r in hours.to_dict("records")],
    )


def export_orders_csv(orders: Iterable[Order], now: Optional[datetime] = None, days: int = 30) -> str:
    """CSV of every order (cancelled included) placed in the last ``days`` calendar days, newest first."""
    now = as_utc(now or utcnow())
    orders_df, _ = orders_frame(orders)
    recent = orders_df[orders_df["created_at"] >= _days_back(now, days)]
    recent = recent.sort_values(["created_at", "order_id"], ascending=False)
    return recent[list(EXPORT_COLUMNS)].rename(columns=EXPORT_COLUMNS).to_csv(index=False)
