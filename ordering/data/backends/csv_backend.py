from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from ordering.config import get_config
from ordering.logging import get_logger

from ..interface import MenuCatalog, OrderStore, StatusConflict
from ..models import (
    CustomerInfo,
    DeliveryAddress,
    MenuItem,
    Order,
    OrderFilters,
    OrderItem,
    OrderStatus,
    PromoCode,
)

logger = get_logger(__name__)

MENU_COLUMNS = ["item_id", "name", "description", "category", "price", "is_available"]
PROMO_COLUMNS = [
    "promo_id", "code", "description", "promo_type", "discount_percent", "discount_amount",
    "min_order_amount", "max_discount", "is_active", "valid_from", "valid_until",
    "usage_limit", "times_used",
]
ORDER_COLUMNS = [
    "order_id", "customer_name", "customer_email", "customer_phone", "order_type", "status",
    "subtotal", "tax_amount", "delivery_fee", "discount_amount", "total_price", "promo_code",
    "notes", "delivery_street", "delivery_city", "delivery_state", "delivery_zip",
    "payment_method", "payment_transaction_id", "card_brand", "card_last4",
    "created_at", "updated_at",
]
ORDER_ITEM_COLUMNS = ["order_id", "line_number", "menu_item_id", "name", "unit_price", "quantity", "subtotal"]

FILES = {
    "menu": ("menu_items.csv", MENU_COLUMNS),
    "promos": ("promo_codes.csv", PROMO_COLUMNS),
    "orders": ("orders.csv", ORDER_COLUMNS),
    "order_items": ("order_items.csv", ORDER_ITEM_COLUMNS),
}


@dataclass
class _Tables:
    menu: pd.DataFrame
    promos: pd.DataFrame
    orders: pd.DataFrame
    order_items: pd.DataFrame


# ---------- row <-> model helpers ----------

def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(getattr(value, "value", value))


def _utc_timestamp(value: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def _clean(row: Dict[str, str]) -> Dict[str, Optional[str]]:
    return {k: (v if v != "" else None) for k, v in row.items()}


def promo_to_row(promo: PromoCode) -> Dict[str, str]:
    data = promo.model_dump()
    return {col: _cell(data[col]) for col in PROMO_COLUMNS}


def order_to_row(order: Order) -> Dict[str, str]:
    address = order.delivery_address
    data = {
        **order.model_dump(exclude={"customer", "delivery_address", "items"}),
        "customer_name": order.customer.name,
        "customer_email": order.customer.email,
        "customer_phone": order.customer.phone,
        "delivery_street": address.street if address else None,
        "delivery_city": address.city if address else None,
        "delivery_state": address.state if address else None,
        "delivery_zip": address.zip_code if address else None,
    }
    return {col: _cell(data[col]) for col in ORDER_COLUMNS}


def order_item_to_row(item: OrderItem) -> Dict[str, str]:
    data = item.model_dump()
    return {col: _cell(data[col]) for col in ORDER_ITEM_COLUMNS}


def order_from_row(row: Dict[str, str], items: List[OrderItem]) -> Order:
    row = _clean(row)
    address = None
    if row["delivery_street"]:
        address = DeliveryAddress(
            street=row["delivery_street"],
            city=row["delivery_city"],
            state=row["delivery_state"],
            zip_code=row["delivery_zip"],
        )
    fields = {k: v for k, v in row.items() if v is not None and not k.startswith(("customer_", "delivery_"))}
    return Order(
        **fields,
        customer=CustomerInfo(name=row["customer_name"], email=row["customer_email"], phone=row["customer_phone"]),
        delivery_address=address,
        delivery_fee=row["delivery_fee"],
        items=items,
    )


class CsvDataAccess(OrderStore, MenuCatalog):
    """
    CSV-backed implementation.
    - Loads CSVs from `data_dir` once at construction and keeps the frames in memory.
    - Writes stage new frames, write temp files, then swap them in; any failure
      restores the previous frames and files, so an order is never half written.
    """

    def __init__(self, data_dir: str | Path = None) -> None:
        if data_dir is None:
            config = get_config()
            data_dir = config.data_dir

        self.data_dir = Path(data_dir)

        # If the path is relative, make it relative to the repository root
        if not self.data_dir.is_absolute():
            current = Path.cwd()
            repo_root = None

            for parent in [current] + list(current.parents):
                if (parent / "pyproject.toml").exists():
                    repo_root = parent
                    break

            self.data_dir = (repo_root or current) / self.data_dir

        self._lock = threading.RLock()
        self._tables = self._load_tables(self.data_dir)

    # ---------- loading / writing helpers ----------

    @staticmethod
    def _load_tables(data_dir: Path) -> _Tables:
        if not data_dir.exists():
            raise FileNotFoundError(
                f"Data directory not found: {data_dir}\n"
                f"Please either:\n"
                f"  1. Generate sample data: python -m ordering.data.seed_data --output-dir {data_dir}\n"
                f"  2. Set DATA_DIR environment variable to point to your data directory\n"
                f"  3. Set PERSISTENCE_BACKEND=memory to run without files"
            )

        required_files = [FILES["menu"][0], FILES["promos"][0]]
        missing_files = [f for f in required_files if not (data_dir / f).exists()]
        if missing_files:
            raise FileNotFoundError(
                f"Required CSV files missing in {data_dir}:\n"
                f"  Missing: {', '.join(missing_files)}\n"
                f"  Expected files: {', '.join(required_files)}\n\n"
                f"Generate them with: python -m ordering.data.seed_data --output-dir {data_dir}"
            )

        frames = {}
        try:
            for key, (filename, columns) in FILES.items():
                path = data_dir / filename
                if path.exists():
                    df = pd.read_csv(path, dtype=str, keep_default_na=False)
                    for col in columns:
                        if col not in df.columns:
                            df[col] = ""
                    frames[key] = df[columns]
                else:
                    frames[key] = pd.DataFrame(columns=columns, dtype=str)
        except Exception as e:
            raise RuntimeError(
                f"Error reading CSV files from {data_dir}: {e}\n"
                f"Please check that the CSV files are valid and readable."
            ) from e

        return _Tables(**frames)

    def _write(self, staged: Dict[str, pd.DataFrame]) -> None:
        """Persist staged frames and swap them in; all or nothing."""
        with self._lock:
            previous = {key: getattr(self._tables, key) for key in staged}
            temp_paths = {}
            replaced = []
            try:
                for key, df in staged.items():
                    filename = FILES[key][0]
                    tmp = self.data_dir / f".{filename}.tmp"
                    df.to_csv(tmp, index=False)
                    temp_paths[key] = tmp
                for key, tmp in temp_paths.items():
                    os.replace(tmp, self.data_dir / FILES[key][0])
                    replaced.append(key)
            except Exception:
                for key in replaced:
                    previous[key].to_csv(self.data_dir / FILES[key][0], index=False)
                for tmp in temp_paths.values():
                    if tmp.exists():
                        tmp.unlink()
                logger.error(f"CSV write failed in {self.data_dir}; restored {len(replaced)} file(s)")
                raise
            for key, df in staged.items():
                setattr(self._tables, key, df)

    # ---------- catalog ----------

    def get_menu_item(self, item_id: int) -> Optional[MenuItem]:
        df = self._tables.menu
        match = df[df["item_id"] == str(item_id)]
        if match.empty:
            return None
        return MenuItem(**_clean(match.iloc[0].to_dict()))

    def list_menu_items(self, category: Optional[str] = None) -> List[MenuItem]:
        df = self._tables.menu
        if category:
            df = df[df["category"].str.lower() == category.lower()]
        items = [MenuItem(**_clean(r)) for r in df.to_dict("records")]
        return sorted(items, key=lambda m: (m.category, m.item_id))

    # ---------- orders ----------

    def _next_id(self, df: pd.DataFrame, column: str) -> int:
        if df.empty:
            return 1
        return int(pd.to_numeric(df[column]).max()) + 1

    def insert_order(self, order: Order, items: List[OrderItem], promo_id: Optional[int] = None) -> int:
        if not items:
            raise ValueError("An order must contain at least one item")
        with self._lock:
            order_id = self._next_id(self._tables.orders, "order_id")
            order_row = order_to_row(order.model_copy(update={"order_id": order_id}))
            item_rows = [
                order_item_to_row(item.model_copy(update={"order_id": order_id, "line_number": n}))
                for n, item in enumerate(items, start=1)
            ]
            staged = {
                "orders": pd.concat([self._tables.orders, pd.DataFrame([order_row])], ignore_index=True),
                "order_items": pd.concat([self._tables.order_items, pd.DataFrame(item_rows)], ignore_index=True),
            }
            if promo_id is not None:
                staged["promos"] = self._incremented(promo_id)
            self._write(staged)
            logger.debug(f"Wrote order {order_id} with {len(item_rows)} items to {self.data_dir}")
            return order_id

    def _items_by_order(self, order_ids: List[str]) -> Dict[str, List[OrderItem]]:
        df = self._tables.order_items
        df = df[df["order_id"].isin(order_ids)]
        grouped: Dict[str, List[OrderItem]] = {}
        for row in df.to_dict("records"):
            grouped.setdefault(row["order_id"], []).append(OrderItem(**_clean(row)))
        for items in grouped.values():
            items.sort(key=lambda i: i.line_number)
        return grouped

    def get_order(self, order_id: int) -> Optional[Order]:
        with self._lock:
            df = self._tables.orders
            match = df[df["order_id"] == str(order_id)]
            if match.empty:
                return None
            items = self._items_by_order([str(order_id)]).get(str(order_id), [])
            return order_from_row(match.iloc[0].to_dict(), items)

    def list_orders(self, filters: Optional[OrderFilters] = None) -> List[Order]:
        filters = filters or OrderFilters()
        with self._lock:
            df = self._tables.orders
            if df.empty:
                return []
            created = pd.to_datetime(df["created_at"], utc=True, format="ISO8601")
            mask = pd.Series(True, index=df.index)
            statuses = filters.status_values()
            if statuses is not None:
                mask &= df["status"].isin(statuses)
            if filters.customer_name and filters.customer_name.strip():
                s = filters.customer_name.strip()
                mask &= df["customer_name"].str.contains(s, case=False, regex=False, na=False)
            if filters.start_ts is not None:
                mask &= created >= _utc_timestamp(filters.start_ts)
            if filters.end_ts is not None:
                mask &= created <= _utc_timestamp(filters.end_ts)

            selected = df.loc[mask].assign(_created=created[mask], _id=pd.to_numeric(df.loc[mask, "order_id"]))
            selected = selected.sort_values(["_created", "_id"], ascending=not filters.newest_first)
            items = self._items_by_order(selected["order_id"].tolist())
            return [
                order_from_row(row, items.get(row["order_id"], []))
                for row in selected[ORDER_COLUMNS].to_dict("records")
            ]

    def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        updated_at: datetime,
        expected_status: Optional[OrderStatus] = None,
    ) -> None:
        with self._lock:
            df = self._tables.orders.copy()
            mask = df["order_id"] == str(order_id)
            if not mask.any():
                raise KeyError(f"Order {order_id} not found")
            current = OrderStatus(df.loc[mask, "status"].iloc[0])
            if expected_status is not None and current != OrderStatus(expected_status):
                raise StatusConflict(order_id, current, expected_status)
            df.loc[mask, "status"] = OrderStatus(status).value
            df.loc[mask, "updated_at"] = updated_at.isoformat()
            self._write({"orders": df})

    # ---------- promo codes ----------

    def find_promo(self, code: str) -> Optional[PromoCode]:
        df = self._tables.promos
        match = df[df["code"] == code.strip().upper()]
        if match.empty:
            return None
        return PromoCode(**_clean(match.iloc[0].to_dict()))

    def _incremented(self, promo_id: int) -> pd.DataFrame:
        df = self._tables.promos.copy()
        mask = df["promo_id"] == str(promo_id)
        if not mask.any():
            raise KeyError(f"Promo {promo_id} not found")
        used = pd.to_numeric(df.loc[mask, "times_used"].replace("", "0"))
        df.loc[mask, "times_used"] = (used + 1).astype(int).astype(str)
        return df

    def increment_promo_usage(self, promo_id: int) -> None:
        with self._lock:
            self._write({"promos": self._incremented(promo_id)})

    def upsert_promo(self, promo: PromoCode) -> PromoCode:
        with self._lock:
            df = self._tables.promos
            code = promo.code.strip().upper()
            existing = df[df["code"] == code]
            if promo.promo_id is not None:
                promo_id = promo.promo_id
            elif not existing.empty:
                promo_id = int(existing.iloc[0]["promo_id"])
            else:
                promo_id = self._next_id(df, "promo_id")
            stored = promo.model_copy(update={"code": code, "promo_id": promo_id})
            remaining = df[df["code"] != code]
            self._write({"promos": pd.concat([remaining, pd.DataFrame([promo_to_row(stored)])], ignore_index=True)})
            return stored
