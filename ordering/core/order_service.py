from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from ordering.config import AppConfig, get_config
from ordering.core.clock import Clock, utcnow
from ordering.core.errors import (
    InvalidLineItem,
    InvalidOrderRequest,
    InvalidTransition,
    OrderingError,
    OrderNotFound,
    PaymentFailure,
    PersistenceFailure,
    PriceMismatch,
    PromoError,
    TerminalStateError,
)
from ordering.core.money import Number, quantize_money, to_cents, to_decimal
from ordering.core.payments import PaymentGateway
from ordering.core.pricing import PriceBreakdown, PricingCalculator
from ordering.core.promo import PromoEngine
from ordering.core.state_machine import ACTIVE_STATES, TERMINAL_STATES, OrderStateMachine
from ordering.data.interface import MenuCatalog, OrderStore, StatusConflict
from ordering.data.models import (
    Actor,
    CartLineItem,
    CustomerInfo,
    DeliveryAddress,
    Order,
    OrderFilters,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentResult,
    PromoResult,
)
from ordering.logging import get_logger

logger = get_logger(__name__)

MAX_NOTES_LENGTH = 500

LineInput = Union[CartLineItem, Mapping]


@contextmanager
def _persistence(action: str):
    """Surface storage errors as PersistenceFailure; internal detail goes to the log only."""
    try:
        yield
    except OrderingError:
        raise
    except Exception as exc:
        logger.error(f"Persistence failure while trying to {action}: {exc!r}")
        raise PersistenceFailure(f"{action}: {exc}") from exc


class OrderService:
    """Creates orders and moves them through their lifecycle.

    Promo failure policy: with ``promo_failure_policy="abort"`` (the default)
    an invalid promo code rejects the whole checkout with the promo error and
    nothing is stored. With ``"ignore"`` the order is placed without a discount
    and a warning is logged.
    """

    def __init__(
        self,
        store: OrderStore,
        catalog: Optional[MenuCatalog] = None,
        promo_engine: Optional[PromoEngine] = None,
        calculator: Optional[PricingCalculator] = None,
        payment_gateway: Optional[PaymentGateway] = None,
        state_machine: Optional[OrderStateMachine] = None,
        config: Optional[AppConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or get_config()
        self.store = store
        self.catalog = catalog or store
        self._clock = clock or utcnow
        self.promo_engine = promo_engine or PromoEngine(store, clock=self._clock)
        self.calculator = calculator or PricingCalculator.from_config(self.config)
        self.state_machine = state_machine or OrderStateMachine(clock=self._clock)
        self.payment_gateway = payment_gateway

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> "OrderService":
        """Wire the service to the collaborators selected in config."""
        from ordering.core.payments import get_payment_gateway
        from ordering.data.util import get_data_access

        data = get_data_access()
        return cls(data, data, payment_gateway=get_payment_gateway(), config=config)

    # ---------- request validation ----------

    @staticmethod
    def _customer(customer: Union[CustomerInfo, Mapping]) -> CustomerInfo:
        try:
            info = customer if isinstance(customer, CustomerInfo) else CustomerInfo(**customer)
        except ValidationError as exc:
            raise InvalidOrderRequest("Invalid customer details") from exc
        if not info.name:
            raise InvalidOrderRequest("Customer name is required")
        return info

    @staticmethod
    def _order_type(order_type: Union[OrderType, str]) -> OrderType:
        try:
            return OrderType(order_type)
        except ValueError:
            raise InvalidOrderRequest(f"Invalid order type: {order_type}") from None

    @staticmethod
    def _address(
        order_type: OrderType, address: Union[DeliveryAddress, Mapping, None]
    ) -> Optional[DeliveryAddress]:
        if order_type == OrderType.PICKUP:
            if address is not None:
                logger.debug("Ignoring delivery address on a pickup order")
            return None
        if address is None:
            raise InvalidOrderRequest("Please complete your delivery address")
        try:
            return address if isinstance(address, DeliveryAddress) else DeliveryAddress(**address)
        except ValidationError as exc:
            raise InvalidOrderRequest("Please complete your delivery address") from exc

    @staticmethod
    def _notes(notes: Optional[str]) -> Optional[str]:
        if notes is None or not notes.strip():
            return None
        notes = notes.strip()
        if len(notes) > MAX_NOTES_LENGTH:
            raise InvalidOrderRequest(f"Special instructions must be under {MAX_NOTES_LENGTH} characters")
        return notes

    def _snapshot(self, line_items: Iterable[LineInput]) -> List[OrderItem]:
        """Check each cart line and capture the catalog's current name and price."""
        items: List[OrderItem] = []
        for n, raw in enumerate(line_items, start=1):
            try:
                line = raw if isinstance(raw, CartLineItem) else CartLineItem(**raw)
            except (TypeError, ValidationError) as exc:
                raise InvalidLineItem("Invalid item in cart") from exc
            self.calculator.line_subtotal(line)

            with _persistence("look up menu item"):
                menu_item = self.catalog.get_menu_item(line.item_id)
            if menu_item is None or not menu_item.is_available:
                raise InvalidLineItem(f"Item {line.item_id} is not available", item_id=line.item_id)
            if to_decimal(line.unit_price) != menu_item.price:
                logger.warning(
                    f"Cart price {line.unit_price} for item {line.item_id} differs from menu price {menu_item.price}"
                )

            items.append(
                OrderItem(
                    line_number=n,
                    menu_item_id=menu_item.item_id,
                    name=menu_item.name,
                    unit_price=menu_item.price,
                    quantity=line.quantity,
                    subtotal=menu_item.price * line.quantity,
                )
            )
        return items

    # ---------- pricing ----------

    def _promo(self, code: Optional[str], subtotal: Decimal, now: datetime, consume: bool) -> Optional[PromoResult]:
        if code is None or not code.strip():
            return None
        try:
            return self.promo_engine.validate(code, subtotal, now=now, consume=consume)
        except PromoError as exc:
            if self.config.promo_failure_policy == "abort":
                logger.warning(f"Rejecting checkout: promo {code!r} failed ({exc.code})")
                raise
            logger.warning(f"Promo {code!r} failed ({exc.code}); placing order without discount")
            return None

    def _check_client_total(self, client_total: Optional[Number], total: Decimal) -> None:
        if client_total is None:
            return
        client_total = quantize_money(client_total)
        if abs(client_total - total) > self.config.price_tolerance:
            logger.warning(f"Client total {client_total} does not match computed total {total}")
            raise PriceMismatch(client_total, total)

    def preview(
        self,
        line_items: Iterable[LineInput],
        order_type: Union[OrderType, str],
        promo_code: Optional[str] = None,
    ) -> PriceBreakdown:
        """Checkout preview. Validates the promo without consuming a use."""
        order_type = self._order_type(order_type)
        items = self._snapshot(line_items)
        if not items:
            raise InvalidOrderRequest("Order must contain at least one item")
        result = self._promo(promo_code, self.calculator.subtotal(items), self._clock(), consume=False)
        return self.calculator.compute(items, order_type, result.promo if result else None)

    # ---------- payment ----------

    def _charge(self, total: Decimal, token: Optional[str]) -> Optional[PaymentResult]:
        if total <= 0:
            return None
        if not token:
            raise InvalidOrderRequest("Payment information required")
        if self.payment_gateway is None:
            raise PaymentFailure("No payment processor configured")
        try:
            return self.payment_gateway.charge(to_cents(total), token)
        except PaymentFailure:
            logger.warning(f"Card payment of {total} declined")
            raise
        except Exception as exc:
            logger.error(f"Payment processor error: {exc!r}")
            raise PaymentFailure(str(exc)) from exc

    def _void(self, payment: PaymentResult) -> None:
        try:
            self.payment_gateway.void(payment.transaction_id)
        except Exception as exc:
            # Money was taken but no order exists; needs a manual refund.
            logger.critical(f"Could not void charge {payment.transaction_id} after failed insert: {exc!r}")

    # ---------- operations ----------

    def create(
        self,
        customer: Union[CustomerInfo, Mapping],
        line_items: Iterable[LineInput],
        order_type: Union[OrderType, str],
        promo_code: Optional[str] = None,
        notes: Optional[str] = None,
        delivery_address: Union[DeliveryAddress, Mapping, None] = None,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
        payment_token: Optional[str] = None,
        client_total: Optional[Number] = None,
    ) -> Order:
        """Price, charge (card only) and store a new order.

        Args:
            customer: Name (required), optional email and phone.
            line_items: Cart lines; prices are re-read from the catalog.
            order_type: ``delivery`` or ``pickup``.
            promo_code: Optional code; see the class docstring for the failure policy.
            notes: Special instructions.
            delivery_address: Required for delivery orders.
            payment_method: ``cash`` or ``card``.
            payment_token: Card source token, required for card payments.
            client_total: Total shown to the customer; rejected if it differs by more
                than ``price_tolerance`` from the computed total.
        Returns:
            The stored order in ``pending`` status with its id and items.
        Raises:
            InvalidOrderRequest, InvalidLineItem, PromoError, PriceMismatch,
            PaymentFailure, PersistenceFailure.
        """
        customer = self._customer(customer)
        order_type = self._order_type(order_type)
        address = self._address(order_type, delivery_address)
        notes = self._notes(notes)
        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidOrderRequest(f"Invalid payment method: {payment_method}") from None

        items = self._snapshot(line_items)
        if not items:
            raise InvalidOrderRequest("Order must contain at least one item")

        now = self._clock()
        consume_on_validate = self.config.promo_usage_accounting == "on_validate"
        promo_result = self._promo(promo_code, self.calculator.subtotal(items), now, consume_on_validate)
        promo = promo_result.promo if promo_result else None

        breakdown = self.calculator.compute(items, order_type, promo)
        self._check_client_total(client_total, breakdown.total)

        order = Order(
            customer=customer,
            order_type=order_type,
            status=OrderStatus.PENDING,
            subtotal=breakdown.subtotal,
            tax_amount=breakdown.tax,
            delivery_fee=breakdown.delivery_fee,
            discount_amount=breakdown.discount,
            total_price=breakdown.total,
            promo_code=promo.code if promo else None,
            notes=notes,
            delivery_address=address,
            payment_method=payment_method,
            created_at=now,
            updated_at=now,
        )

        payment = None
        if payment_method == PaymentMethod.CARD:
            payment = self._charge(breakdown.total, payment_token)
            if payment is not None:
                order = order.model_copy(update={
                    "payment_transaction_id": payment.transaction_id,
                    "card_brand": payment.card_brand,
                    "card_last4": payment.last4,
                })

        promo_id = None if consume_on_validate or promo is None else promo.promo_id
        try:
            with _persistence("store order"):
                order_id = self.store.insert_order(order, items, promo_id=promo_id)
        except PersistenceFailure:
            if payment is not None:
                self._void(payment)
            raise

        logger.info(
            f"Order {order_id} created for {customer.name}: {order_type.value}, "
            f"{len(items)} lines, total {breakdown.total}"
        )
        stored_items = [item.model_copy(update={"order_id": order_id}) for item in items]
        return order.model_copy(update={"order_id": order_id, "items": stored_items})

    def get_order(self, order_id: int) -> Order:
        with _persistence("load order"):
            order = self.store.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list_orders(self, filters: Optional[OrderFilters] = None) -> List[Order]:
        with _persistence("list orders"):
            return self.store.list_orders(filters)

    def kitchen_queue(self) -> List[Order]:
        """Open orders, oldest first."""
        statuses = [s.value for s in OrderStatus if s in ACTIVE_STATES]
        return self.list_orders(OrderFilters(status=statuses, newest_first=False))

    def update_status(
        self,
        order_id: int,
        target: Union[OrderStatus, str],
        actor: Union[Actor, str] = Actor.SYSTEM,
    ) -> Order:
        """Apply a lifecycle transition and store it.

        Raises:
            OrderNotFound, TerminalStateError, InvalidTransition,
            TransitionNotPermitted, PersistenceFailure.
        """
        order = self.get_order(order_id)
        updated = self.state_machine.transition(order, target, actor=Actor(actor))
        with _persistence("update order status"):
            try:
                self.store.update_order_status(
                    order_id, updated.status, updated.updated_at, expected_status=order.status
                )
            except KeyError:
                raise OrderNotFound(order_id) from None
            except StatusConflict as exc:
                # another actor moved the order after we loaded it
                logger.warning(f"Lost status race on order {order_id}: {exc}")
                if exc.current in TERMINAL_STATES:
                    raise TerminalStateError(exc.current.value) from exc
                raise InvalidTransition(
                    exc.current.value,
                    updated.status.value,
                    f"Order {order_id} is now {exc.current.value}; cannot move it to {updated.status.value}.",
                ) from exc
        return updated
