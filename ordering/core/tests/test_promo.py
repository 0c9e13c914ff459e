import threading
from datetime import timedelta
from decimal import Decimal

import pytest

from ordering.core.errors import (
    InvalidOrderRequest,
    PersistenceFailure,
    PromoExpired,
    PromoMinimumNotMet,
    PromoNotFound,
    PromoUsageExceeded,
)
from ordering.core.promo import PromoEngine, compute_discount, normalize_code
from ordering.data.models import PromoCode, PromoType


def add_promo(store, code, **kwargs):
    kwargs.setdefault("promo_type", PromoType.FIXED)
    kwargs.setdefault("discount_amount", Decimal("5"))
    return store.upsert_promo(PromoCode(code=code, **kwargs))


def times_used(store, code):
    return store.find_promo(code).times_used


def test_percentage_discount(promo_engine, store):
    result = promo_engine.validate("SAVE20", Decimal("100.00"))
    assert result.code == "SAVE20"
    assert result.promo_type == PromoType.PERCENTAGE
    assert result.discount_amount == Decimal("20.00")
    assert times_used(store, "SAVE20") == 1


def test_percentage_discount_is_capped(promo_engine):
    assert promo_engine.validate("SAVE20", Decimal("300.00")).discount_amount == Decimal("50.00")


def test_fixed_and_buy2get1_are_flat(promo_engine):
    assert promo_engine.validate("FIRSTORDER", Decimal("40")).discount_amount == Decimal("5.00")
    assert promo_engine.validate("PIZZA2FOR1", Decimal("30")).discount_amount == Decimal("12.99")


def test_flat_discount_never_exceeds_subtotal(promo_engine):
    assert promo_engine.validate("FREESHIP", Decimal("2.00")).discount_amount == Decimal("2.00")


def test_code_is_trimmed_and_upper_cased(promo_engine):
    assert promo_engine.validate("  save20 ", Decimal("30")).code == "SAVE20"
    assert normalize_code(" firstOrder\n") == "FIRSTORDER"


def test_minimum_is_inclusive(promo_engine):
    assert promo_engine.validate("FIRSTORDER", Decimal("15.00")).discount_amount == Decimal("5.00")


def test_below_minimum_states_the_minimum(promo_engine, store):
    with pytest.raises(PromoMinimumNotMet) as exc:
        promo_engine.validate("FIRSTORDER", Decimal("14.99"))
    assert exc.value.minimum == Decimal("15")
    assert exc.value.user_message == "Minimum order of $15.00 required for this promo"
    assert times_used(store, "FIRSTORDER") == 0


@pytest.mark.parametrize("code", ["NOPE", "", "   ", "X" * 51, None])
def test_unknown_or_malformed_codes(promo_engine, code):
    with pytest.raises(PromoNotFound):
        promo_engine.validate(code, Decimal("50"))


def test_inactive_code_looks_unknown(promo_engine, store):
    add_promo(store, "PAUSED", is_active=False)
    with pytest.raises(PromoNotFound) as exc:
        promo_engine.validate("PAUSED", Decimal("50"))
    assert type(exc.value) is PromoNotFound


@pytest.mark.parametrize(
    "field, offset",
    [
        ("valid_until", timedelta(days=-1)),
        ("valid_until", timedelta(0)),
        ("valid_from", timedelta(hours=1)),
    ],
)
def test_outside_validity_window(promo_engine, store, clock, field, offset):
    add_promo(store, "WINDOW", **{field: clock.now + offset})
    with pytest.raises(PromoExpired) as exc:
        promo_engine.validate("WINDOW", Decimal("50"))
    # callers that only know the base kind still catch it
    assert isinstance(exc.value, PromoNotFound)


def test_inside_validity_window(promo_engine, store, clock):
    add_promo(store, "SPRING", valid_from=clock.now - timedelta(days=1), valid_until=clock.now + timedelta(seconds=1))
    assert promo_engine.validate("SPRING", Decimal("50")).discount_amount == Decimal("5.00")


def test_naive_window_is_treated_as_utc(promo_engine, store, clock):
    add_promo(store, "NAIVE", valid_until=(clock.now - timedelta(minutes=1)).replace(tzinfo=None))
    with pytest.raises(PromoExpired):
        promo_engine.validate("NAIVE", Decimal("50"))


def test_usage_limit(promo_engine, store):
    add_promo(store, "TWICE", usage_limit=2)
    promo_engine.validate("TWICE", Decimal("50"))
    promo_engine.validate("TWICE", Decimal("50"))
    with pytest.raises(PromoUsageExceeded):
        promo_engine.validate("TWICE", Decimal("50"))
    assert times_used(store, "TWICE") == 2


def test_zero_usage_limit_is_exhausted(promo_engine, store):
    add_promo(store, "NEVER", usage_limit=0)
    with pytest.raises(PromoUsageExceeded):
        promo_engine.validate("NEVER", Decimal("50"))


def test_preview_does_not_consume(promo_engine, store):
    first = promo_engine.validate("SAVE20", Decimal("40"), consume=False)
    second = promo_engine.validate("SAVE20", Decimal("40"), consume=False)
    assert first == second
    assert times_used(store, "SAVE20") == 0


def test_explicit_now_overrides_clock(promo_engine, store, clock):
    add_promo(store, "LATER", valid_from=clock.now + timedelta(days=2))
    result = promo_engine.validate("LATER", Decimal("50"), now=clock.now + timedelta(days=3))
    assert result.code == "LATER"


def test_negative_subtotal_rejected(promo_engine):
    with pytest.raises(InvalidOrderRequest):
        promo_engine.validate("SAVE20", Decimal("-1"))


def test_usage_update_failure_is_a_persistence_failure(store, clock, monkeypatch):
    def broken(promo_id):
        raise OSError("disk full")

    monkeypatch.setattr(store, "increment_promo_usage", broken)
    with pytest.raises(PersistenceFailure) as exc:
        PromoEngine(store, clock=clock).validate("SAVE20", Decimal("40"))
    assert "disk full" not in exc.value.user_message
    assert isinstance(exc.value.__cause__, OSError)


def test_compute_discount_on_empty_subtotal():
    promo = PromoCode(code="P", promo_type=PromoType.PERCENTAGE, discount_percent=Decimal("10"))
    assert compute_discount(promo, Decimal("0")) == 0
    assert compute_discount(promo, Decimal("-5")) == 0


class _ReadTogetherStore:
    """Holds every promo lookup until ``parties`` callers have read the row."""

    def __init__(self, inner, parties):
        self.inner = inner
        self.barrier = threading.Barrier(parties)

    def find_promo(self, code):
        promo = self.inner.find_promo(code)
        self.barrier.wait(timeout=5)
        return promo

    def increment_promo_usage(self, promo_id):
        self.inner.increment_promo_usage(promo_id)


def test_usage_limit_is_soft_under_concurrency(store, clock):
    """Two checkouts that read a nearly exhausted code together both succeed."""
    add_promo(store, "LASTONE", usage_limit=1)
    engine = PromoEngine(_ReadTogetherStore(store, parties=2), clock=clock)
    results, errors = [], []

    def redeem():
        try:
            results.append(engine.validate("LASTONE", Decimal("50")))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=redeem) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert len(results) == 2
    assert times_used(store, "LASTONE") == 2
