#!/usr/bin/env python3
"""
seed_data.py

Writes a CSV data folder for the CSV order store: the launch menu, the launch
promo codes and, optionally, a history of demo orders placed through
OrderService so every stored total is priced the same way as a real checkout.

Files:
- menu_items.csv, promo_codes.csv, orders.csv, order_items.csv

Run:
  python -m ordering.data.seed_data --output-dir sample_data --orders 200 --days 14
"""

from __future__ import annotations

import argparse
import csv
import os
import random
import sys
from datetime import datetime, timedelta, timezone
from math import pi, sin
from typing import Dict, List, Optional

from ordering.config import get_config
from ordering.data.backends.csv_backend import (
    FILES,
    MENU_COLUMNS,
    ORDER_COLUMNS,
    ORDER_ITEM_COLUMNS,
    PROMO_COLUMNS,
    CsvDataAccess,
    promo_to_row,
)
from ordering.data.defaults import default_menu_items, default_promo_codes
from ordering.data.models import MenuItem

FIRST_NAMES = ["Alex", "Sam", "Jordan", "Taylor", "Riley", "Morgan", "Casey", "Jamie", "Avery", "Quinn"]
LAST_NAMES = ["Nguyen", "Garcia", "Smith", "Patel", "Kim", "Lopez", "Brown", "Khan", "Rossi", "Cohen"]
STREETS = ["Main St", "Oak Ave", "Pine Rd", "Maple Dr", "Cedar Ln", "Elm St"]


# -----------------------------
# Utility functions
# -----------------------------

def ensure_dir(path: str) -> None:
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def meal_time_multiplier(ts: datetime) -> float:
    """
    Lunch and dinner peaks: two sinusoids around ~12:00 and ~18:30.
    Returns ~0.2 to ~1.4 multiplier.
    """
    hour = ts.hour + ts.minute / 60.0
    lunch = 0.5 * (1 + sin((hour - 6) / 24 * 2 * pi))
    dinner = 0.5 * (1 + sin((hour - 12.5) / 24 * 2 * pi))
    return 0.2 + 1.2 * (0.4 * lunch + 0.6 * dinner)


def random_order_time(start: datetime, end: datetime) -> datetime:
    """Rejection-sample a timestamp weighted toward meal times."""
    span = (end - start).total_seconds()
    while True:
        ts = start + timedelta(seconds=random.uniform(0, span))
        if random.random() * 1.4 <= meal_time_multiplier(ts):
            return ts


# -----------------------------
# Generators
# -----------------------------

def gen_cart(menu: List[MenuItem]) -> List[Dict]:
    lines = []
    for item in random.sample(menu, k=random.randint(1, 4)):
        quantity = random.choices([1, 2, 3], weights=[0.7, 0.2, 0.1])[0]
        lines.append({"item_id": item.item_id, "name": item.name, "unit_price": item.price, "quantity": quantity})
    return lines


def gen_customer() -> Dict:
    first, last = random.choice(FIRST_NAMES), random.choice(LAST_NAMES)
    return {
        "name": f"{first} {last}",
        "email": f"{first}.{last}{random.randint(1, 99)}@example.com".lower(),
        "phone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
    }


def gen_address() -> Dict:
    return {
        "street": f"{random.randint(10, 9999)} {random.choice(STREETS)}",
        "city": "Springfield",
        "state": "IL",
        "zip_code": f"{random.randint(60000, 62999)}",
    }


def place_demo_orders(store: CsvDataAccess, n: int, days: int) -> int:
    """Place ``n`` orders spread over the last ``days`` days and advance most of them."""
    from ordering.core.errors import PromoError
    from ordering.core.order_service import OrderService
    from ordering.core.payments import SandboxPaymentGateway
    from ordering.core.state_machine import next_status
    from ordering.data.models import Actor, OrderStatus

    end = datetime.now(timezone.utc)
    start = end - timedelta(days=days)
    menu = [m for m in store.list_menu_items() if m.is_available]
    promo_codes = [p.code for p in default_promo_codes()]
    gateway = SandboxPaymentGateway(token_prefix="TEST_")

    placed = 0
    for ts in sorted(random_order_time(start, end) for _ in range(n)):
        service = OrderService(store, store, payment_gateway=gateway, clock=lambda ts=ts: ts)
        order_type = random.choice(["delivery", "pickup"])
        card = random.random() < 0.7
        request = dict(
            customer=gen_customer(),
            line_items=gen_cart(menu),
            order_type=order_type,
            delivery_address=gen_address() if order_type == "delivery" else None,
            payment_method="card" if card else "cash",
            payment_token=f"TEST_{random.randint(10**8, 10**9)}" if card else None,
        )
        code = random.choice(promo_codes) if random.random() < 0.15 else None
        try:
            order = service.create(promo_code=code, **request)
        except PromoError:
            # e.g. cart below the promo minimum
            order = service.create(**request)
        placed += 1

        # Older orders have had time to move through the kitchen.
        if random.random() < 0.05:
            service.update_status(order.order_id, OrderStatus.CANCELLED, Actor.BUSINESS)
            continue
        status = order.status
        steps = 3 if ts < end - timedelta(hours=2) else random.randint(0, 3)
        for _ in range(steps):
            status = next_status(status)
            service.update_status(order.order_id, status, Actor.KITCHEN)
    return placed


# -----------------------------
# CSV writer
# -----------------------------

def write_csv(path: str, rows: List[Dict], headers: List[str]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=headers)
        w.writeheader()
        for r in rows:
            w.writerow(r)


# -----------------------------
# Main
# -----------------------------

def main(argv: Optional[List[str]] = None) -> int:
    config = get_config()

    parser = argparse.ArgumentParser(description="Write menu, promo codes and demo orders to CSVs.")
    parser.add_argument("--output-dir", type=str, default=config.data_dir)
    parser.add_argument("--orders", type=int, default=config.default_seed_orders, help="Demo orders to place.")
    parser.add_argument("--days", type=int, default=config.default_seed_days, help="Days of order history.")
    parser.add_argument("--seed", type=int, default=config.default_seed_value)
    parser.add_argument("--no-overwrite", action="store_true", help="Fail if CSVs already exist.")
    args = parser.parse_args(argv)

    random.seed(args.seed)

    outdir = args.output_dir
    ensure_dir(outdir)

    files = {key: os.path.join(outdir, filename) for key, (filename, _) in FILES.items()}
    if args.no_overwrite:
        for p in files.values():
            if os.path.exists(p):
                print(f"Refusing to overwrite existing file: {p}", file=sys.stderr)
                return 2

    menu = [
        {
            "item_id": m.item_id,
            "name": m.name,
            "description": m.description or "",
            "category": m.category,
            "price": str(m.price),
            "is_available": "true" if m.is_available else "false",
        }
        for m in default_menu_items()
    ]
    promos = [promo_to_row(p) for p in default_promo_codes()]

    write_csv(files["menu"], menu, MENU_COLUMNS)
    write_csv(files["promos"], promos, PROMO_COLUMNS)
    write_csv(files["orders"], [], ORDER_COLUMNS)
    write_csv(files["order_items"], [], ORDER_ITEM_COLUMNS)

    placed = 0
    if args.orders > 0:
        placed = place_demo_orders(CsvDataAccess(data_dir=os.path.abspath(outdir)), args.orders, args.days)

    # simple summary
    print(f"Generated data in {outdir}")
    print(f" menu_items: {len(menu)} | promo_codes: {len(promos)} | orders: {placed}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
