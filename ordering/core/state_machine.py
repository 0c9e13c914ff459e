from __future__ import annotations

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from ordering.core.clock import Clock, utcnow
from ordering.core.errors import InvalidTransition, TerminalStateError, TransitionNotPermitted
from ordering.data.models import Actor, Order, OrderStatus
from ordering.logging import get_logger

logger = get_logger(__name__)

S = OrderStatus

# One step at a time along the kitchen flow; cancelling is allowed until the order closes.
TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.PENDING: frozenset({S.PREPARING, S.CANCELLED}),
    S.PREPARING: frozenset({S.READY, S.CANCELLED}),
    S.READY: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL_STATES: FrozenSet[OrderStatus] = frozenset({S.COMPLETED, S.CANCELLED})

ACTIVE_STATES: FrozenSet[OrderStatus] = frozenset({S.PENDING, S.PREPARING, S.READY})

_FORWARD: Dict[OrderStatus, OrderStatus] = {
    S.PENDING: S.PREPARING,
    S.PREPARING: S.READY,
    S.READY: S.COMPLETED,
}


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """The forward step the kitchen display offers, or None once the order is closed."""
    return _FORWARD.get(OrderStatus(status))


def is_permitted(actor: Actor, current: OrderStatus, target: OrderStatus) -> bool:
    actor = Actor(actor)
    if actor in (Actor.BUSINESS, Actor.SYSTEM, Actor.KITCHEN):
        return True
    # customers can only call off an order the kitchen has not started
    return current == S.PENDING and target == S.CANCELLED


def allowed_targets(status: OrderStatus, actor: Actor = Actor.SYSTEM) -> FrozenSet[OrderStatus]:
    status = OrderStatus(status)
    return frozenset(t for t in TRANSITIONS[status] if is_permitted(actor, status, t))


class OrderStateMachine:
    """Order lifecycle: pending -> preparing -> ready -> completed, with cancelled
    reachable from every non-terminal state.

    ``transition`` never mutates its argument; it returns an updated copy.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utcnow

    def transition(
        self,
        order: Order,
        target: OrderStatus,
        actor: Actor = Actor.SYSTEM,
        now: Optional[datetime] = None,
    ) -> Order:
        current = OrderStatus(order.status)

        if current in TERMINAL_STATES:
            raise TerminalStateError(current.value)
        try:
            target = OrderStatus(target)
        except ValueError:
            raise InvalidTransition(current.value, str(target), f"'{target}' is not a valid order status.") from None
        if target not in TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)
        if not is_permitted(actor, current, target):
            raise TransitionNotPermitted(current.value, target.value, Actor(actor).value)

        logger.info(f"Order {order.order_id}: {current.value} -> {target.value} by {Actor(actor).value}")
        return order.model_copy(update={"status": target, "updated_at": now or self._clock()})
