from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, Field


class TopItem(BaseModel):
    """Best seller row."""
    name: str = Field(description="Menu item name")
    quantity: int = Field(description="Units sold")
    revenue: Decimal = Field(description="Line revenue")


class DailyCount(BaseModel):
    day: date = Field(description="Calendar day")
    count: int = Field(description="Orders placed that day")


class DailyRevenue(BaseModel):
    day: date = Field(description="Calendar day")
    amount: Decimal = Field(description="Revenue booked that day")


class HourlyCount(BaseModel):
    hour: str = Field(description="Two-digit hour of day")
    orders: int = Field(description="Orders placed in that hour")


class BusinessAnalytics(BaseModel):
    """Aggregates for the business dashboard. Cancelled orders are excluded unless noted."""
    total_orders: int = Field(description="Non-cancelled orders")
    total_revenue: Decimal = Field(description="Sum of total_price")
    average_order_value: Decimal = Field(description="Mean total_price")
    orders_today: int
    revenue_today: Decimal
    orders_this_week: int
    revenue_this_week: Decimal
    orders_this_month: int
    revenue_this_month: Decimal
    top_items: List[TopItem] = Field(default_factory=list)
    orders_by_day: List[DailyCount] = Field(default_factory=list, description="Last 7 days")
    revenue_by_day: List[DailyRevenue] = Field(default_factory=list, description="Last 7 days")
    orders_by_status: Dict[str, int] = Field(default_factory=dict, description="All statuses, cancelled included")
    peak_hours: List[HourlyCount] = Field(default_factory=list, description="Last 30 days")
