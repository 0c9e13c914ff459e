from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OrderFilters(BaseModel):
    """Filters for the order data."""
    status: Optional[str | list[str]] = Field(default=None, description="Status filter (single status or list of statuses)")
    customer_name: Optional[str] = Field(default=None, description="Case-insensitive substring of the customer name")
    start_ts: Optional[datetime] = Field(default=None, description="Start timestamp for order creation range")
    end_ts: Optional[datetime] = Field(default=None, description="End timestamp for order creation range")
    newest_first: bool = Field(default=True, description="Sort by created_at descending")

    def status_values(self) -> Optional[list[str]]:
        if self.status is None:
            return None
        values = [self.status] if isinstance(self.status, str) else list(self.status)
        return [getattr(v, "value", v) for v in values]
