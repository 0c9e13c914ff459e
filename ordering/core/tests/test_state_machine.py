from datetime import timedelta
from decimal import Decimal

import pytest

from ordering.core.errors import InvalidTransition, TerminalStateError, TransitionNotPermitted
from ordering.core.state_machine import (
    TERMINAL_STATES,
    TRANSITIONS,
    OrderStateMachine,
    allowed_targets,
    next_status,
)
from ordering.data.models import Actor, CustomerInfo, Order, OrderStatus, OrderType

S = OrderStatus


@pytest.fixture
def machine(clock):
    return OrderStateMachine(clock=clock)


@pytest.fixture
def make_order(clock):
    def _make(status=S.PENDING):
        created = clock.now - timedelta(minutes=20)
        return Order(
            order_id=7,
            customer=CustomerInfo(name="Sam Kim"),
            order_type=OrderType.PICKUP,
            status=status,
            subtotal=Decimal("10.00"),
            tax_amount=Decimal("0.80"),
            delivery_fee=Decimal("0.00"),
            total_price=Decimal("10.80"),
            created_at=created,
            updated_at=created,
        )
    return _make


def test_happy_path(machine, make_order):
    order = make_order()
    for target in (S.PREPARING, S.READY, S.COMPLETED):
        order = machine.transition(order, target, actor=Actor.KITCHEN)
        assert order.status == target
    assert order.is_terminal


@pytest.mark.parametrize("start", [S.PENDING, S.PREPARING, S.READY])
def test_cancel_from_any_open_state(machine, make_order, start):
    assert machine.transition(make_order(start), S.CANCELLED).status == S.CANCELLED


def test_ready_can_complete_or_cancel(machine, make_order):
    assert machine.transition(make_order(S.READY), S.COMPLETED).status == S.COMPLETED
    assert machine.transition(make_order(S.READY), S.CANCELLED).status == S.CANCELLED


@pytest.mark.parametrize(
    "current, target",
    [
        (S.READY, S.PREPARING),
        (S.PENDING, S.READY),
        (S.PENDING, S.COMPLETED),
        (S.PREPARING, S.PENDING),
        (S.PREPARING, S.PREPARING),
    ],
)
def test_invalid_transitions(machine, make_order, current, target):
    with pytest.raises(InvalidTransition) as exc:
        machine.transition(make_order(current), target)
    assert exc.value.current == current.value
    assert exc.value.target == target.value


@pytest.mark.parametrize("terminal", [S.COMPLETED, S.CANCELLED])
@pytest.mark.parametrize("target", list(S))
def test_terminal_orders_never_move(machine, make_order, terminal, target):
    with pytest.raises(TerminalStateError):
        machine.transition(make_order(terminal), target, actor=Actor.BUSINESS)


def test_unknown_target_status(machine, make_order):
    with pytest.raises(InvalidTransition):
        machine.transition(make_order(), "delivered")


def test_customer_may_cancel_only_before_preparation(machine, make_order):
    assert machine.transition(make_order(), S.CANCELLED, actor=Actor.CUSTOMER).status == S.CANCELLED

    with pytest.raises(TransitionNotPermitted) as exc:
        machine.transition(make_order(S.PREPARING), S.CANCELLED, actor=Actor.CUSTOMER)
    assert exc.value.actor == "customer"

    with pytest.raises(TransitionNotPermitted):
        machine.transition(make_order(), S.PREPARING, actor="customer")


def test_successor_check_comes_before_permission(machine, make_order):
    with pytest.raises(InvalidTransition) as exc:
        machine.transition(make_order(), S.COMPLETED, actor=Actor.CUSTOMER)
    assert not isinstance(exc.value, TransitionNotPermitted)


def test_transition_returns_updated_copy(machine, make_order, clock):
    order = make_order()
    updated = machine.transition(order, S.PREPARING)
    assert order.status == S.PENDING
    assert updated.updated_at == clock.now
    assert updated.updated_at > order.updated_at
    assert updated.created_at == order.created_at
    assert updated.total_price == order.total_price


def test_explicit_timestamp(machine, make_order, clock):
    when = clock.now + timedelta(minutes=1)
    assert machine.transition(make_order(), S.PREPARING, now=when).updated_at == when


def test_transition_table_shape():
    assert TERMINAL_STATES == {S.COMPLETED, S.CANCELLED}
    for status in TERMINAL_STATES:
        assert TRANSITIONS[status] == frozenset()
    for status in set(S) - TERMINAL_STATES:
        assert S.CANCELLED in TRANSITIONS[status]


def test_next_status_follows_kitchen_flow():
    assert next_status(S.PENDING) == S.PREPARING
    assert next_status("preparing") == S.READY
    assert next_status(S.READY) == S.COMPLETED
    assert next_status(S.COMPLETED) is None
    assert next_status(S.CANCELLED) is None


def test_allowed_targets_by_actor():
    assert allowed_targets(S.PENDING) == {S.PREPARING, S.CANCELLED}
    assert allowed_targets(S.PENDING, Actor.CUSTOMER) == {S.CANCELLED}
    assert allowed_targets(S.READY, Actor.CUSTOMER) == frozenset()
    assert allowed_targets(S.CANCELLED, Actor.BUSINESS) == frozenset()
