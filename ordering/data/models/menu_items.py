from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class MenuItem(BaseModel):
    """Catalog entry used to validate and snapshot cart lines."""
    item_id: int = Field(description="Unique menu item identifier")
    name: str = Field(description="Menu item name")
    description: Optional[str] = Field(default=None, description="Menu item description")
    category: str = Field(default="Other", description="Menu category")
    price: Decimal = Field(ge=0, description="Current unit price")
    is_available: bool = Field(default=True, description="Whether the item can be ordered")
