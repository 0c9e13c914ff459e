"""Typed failures raised by the ordering core.

Every error has a stable ``code`` and a ``user_message`` safe to show to a
customer or staff member. ``str(error)`` may carry internal detail and is
meant for logs.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional


class OrderingError(Exception):
    code = "ordering_error"
    user_message = "Something went wrong while processing the order."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)


class InvalidLineItem(OrderingError):
    code = "invalid_line_item"
    user_message = "One of the items in your cart is invalid."

    def __init__(self, message: Optional[str] = None, item_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.item_id = item_id
        if message:
            self.user_message = message


class InvalidOrderRequest(OrderingError):
    code = "invalid_order"
    user_message = "Invalid order data."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message)
        if message:
            self.user_message = message


class PromoError(OrderingError):
    code = "promo_error"
    user_message = "This promo code cannot be applied."


class PromoNotFound(PromoError):
    code = "promo_not_found"
    user_message = "Invalid or expired promo code."


class PromoExpired(PromoNotFound):
    code = "promo_expired"
    user_message = "This promo code is not valid at this time."


class PromoUsageExceeded(PromoNotFound):
    code = "promo_usage_exceeded"
    user_message = "This promo code has reached its usage limit."


class PromoMinimumNotMet(PromoError):
    code = "promo_minimum_not_met"

    def __init__(self, minimum: Decimal) -> None:
        self.minimum = Decimal(minimum)
        self.user_message = f"Minimum order of ${self.minimum:.2f} required for this promo"
        super().__init__(self.user_message)


class InvalidTransition(OrderingError):
    code = "invalid_transition"
    user_message = "That status change is not allowed."

    def __init__(self, current: str, target: str, message: Optional[str] = None) -> None:
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot transition order from {current} to {target}.")


class TransitionNotPermitted(InvalidTransition):
    code = "transition_not_permitted"
    user_message = "You are not allowed to make that status change."

    def __init__(self, current: str, target: str, actor: str) -> None:
        self.actor = actor
        super().__init__(current, target, f"{actor} may not move an order from {current} to {target}.")


class TerminalStateError(OrderingError):
    code = "terminal_state"
    user_message = "This order is already closed and can no longer be changed."

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Order is {status}; no further transitions are permitted.")


class OrderNotFound(OrderingError):
    code = "order_not_found"
    user_message = "Order not found."

    def __init__(self, order_id: int) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found.")


class PriceMismatch(OrderingError):
    code = "price_mismatch"
    user_message = "Prices have changed since you started checkout. Please review your order."

    def __init__(self, client_total: Decimal, server_total: Decimal) -> None:
        self.client_total = client_total
        self.server_total = server_total
        super().__init__(f"Client total {client_total} differs from computed total {server_total}.")


class PersistenceFailure(OrderingError):
    code = "persistence_failure"
    user_message = "Failed to save the order. Please try again."


class PaymentFailure(OrderingError):
    code = "payment_failure"
    user_message = "Payment could not be processed. Please check your card details and try again."
