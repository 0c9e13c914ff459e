"""Promo code validation and the shared discount formula.

Usage accounting: by default a successful ``validate`` consumes one use
(``times_used += 1``) even if the checkout is later abandoned. Two
concurrent validations of a nearly exhausted code can both pass the limit
check before either increments, so ``usage_limit`` is a soft limit. Set
``promo_usage_accounting=on_order`` to move the increment into the order
insert instead.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from ordering.core.clock import Clock, as_utc, utcnow
from ordering.core.errors import (
    InvalidOrderRequest,
    PersistenceFailure,
    PromoExpired,
    PromoMinimumNotMet,
    PromoNotFound,
    PromoUsageExceeded,
)
from ordering.core.money import ZERO, Number, quantize_money, to_decimal
from ordering.data.interface import OrderStore
from ordering.data.models import PromoCode, PromoResult, PromoType
from ordering.logging import get_logger

MAX_CODE_LENGTH = 50

logger = get_logger(__name__)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def compute_discount(promo: PromoCode, subtotal: Number) -> Decimal:
    """Discount for ``subtotal`` at full precision, never more than the subtotal."""
    subtotal = to_decimal(subtotal)
    if subtotal <= 0:
        return ZERO

    if promo.promo_type == PromoType.PERCENTAGE:
        discount = subtotal * promo.discount_percent / Decimal(100)
    else:
        # fixed, delivery and buy2get1 are flat amounts
        discount = promo.discount_amount

    if promo.max_discount is not None:
        discount = min(discount, promo.max_discount)
    return min(discount, subtotal)


def check_eligibility(promo: Optional[PromoCode], now: datetime) -> PromoCode:
    """Raise the matching PromoNotFound refinement unless ``promo`` is redeemable at ``now``."""
    if promo is None or not promo.is_active:
        raise PromoNotFound()
    now = as_utc(now)
    if promo.valid_until is not None and as_utc(promo.valid_until) <= now:
        raise PromoExpired(f"Promo {promo.code} expired at {promo.valid_until.isoformat()}")
    if promo.valid_from is not None and as_utc(promo.valid_from) > now:
        raise PromoExpired(f"Promo {promo.code} is not valid before {promo.valid_from.isoformat()}")
    if promo.usage_limit is not None and promo.times_used >= promo.usage_limit:
        raise PromoUsageExceeded(f"Promo {promo.code} used {promo.times_used}/{promo.usage_limit} times")
    return promo


class PromoEngine:
    """Validates promo codes against an order subtotal."""

    def __init__(self, store: OrderStore, clock: Optional[Clock] = None) -> None:
        self.store = store
        self._clock = clock or utcnow

    def lookup(self, code: str, now: Optional[datetime] = None) -> PromoCode:
        normalized = normalize_code(code)
        if not normalized or len(normalized) > MAX_CODE_LENGTH:
            raise PromoNotFound(f"Malformed promo code {code!r}")
        return check_eligibility(self.store.find_promo(normalized), now or self._clock())

    def validate(
        self,
        code: str,
        order_subtotal: Number,
        now: Optional[datetime] = None,
        consume: bool = True,
    ) -> PromoResult:
        """Validate ``code`` for ``order_subtotal`` and compute its discount.

        Args:
            code: Code as typed by the customer; trimmed and upper-cased here.
            order_subtotal: Cart subtotal before tax, fees and discount.
            now: Evaluation time for the validity window. Defaults to the engine clock.
            consume: Increment the usage counter on success.
        Returns:
            PromoResult with the discount rounded to cents.
        Raises:
            PromoNotFound, PromoExpired, PromoUsageExceeded, PromoMinimumNotMet.
        """
        subtotal = to_decimal(order_subtotal)
        if subtotal < 0:
            raise InvalidOrderRequest("Invalid order total")

        promo = self.lookup(code, now)

        if subtotal < promo.min_order_amount:
            logger.debug(f"Promo {promo.code} needs {promo.min_order_amount}, subtotal is {subtotal}")
            raise PromoMinimumNotMet(promo.min_order_amount)

        discount = compute_discount(promo, subtotal)

        if consume and promo.promo_id is not None:
            try:
                self.store.increment_promo_usage(promo.promo_id)
            except Exception as exc:
                logger.error(f"Could not update usage count for promo {promo.code}: {exc}")
                raise PersistenceFailure(str(exc)) from exc
            logger.info(f"Promo {promo.code} redeemed ({promo.times_used + 1} uses)")

        return PromoResult(
            code=promo.code,
            description=promo.description,
            promo_type=promo.promo_type,
            discount_amount=quantize_money(discount),
            promo=promo,
        )
