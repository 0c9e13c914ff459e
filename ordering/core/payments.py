from __future__ import annotations

import hashlib
from typing import Literal, Optional, Protocol

from ordering.config import get_config
from ordering.core.errors import PaymentFailure
from ordering.data.models import PaymentResult
from ordering.logging import get_logger

logger = get_logger(__name__)


class PaymentGateway(Protocol):
    """Opaque card processor. The core only records what it returns."""

    def charge(self, amount_cents: int, source_token: str) -> PaymentResult:
        """Charge the card behind ``source_token``. Raises PaymentFailure when declined."""
        ...

    def void(self, transaction_id: str) -> None:
        """Release a charge whose order could not be stored."""
        ...


class SandboxPaymentGateway(PaymentGateway):
    """
    Processor stand-in for local and test environments.
    - Approves tokens carrying the configured prefix, declines everything else.
    - Transaction ids are derived from the token and amount so reruns are stable.
    """

    def __init__(self, token_prefix: Optional[str] = None) -> None:
        self.token_prefix = token_prefix or get_config().sandbox_token_prefix
        self.charges: dict[str, int] = {}
        self.voided: list[str] = []

    def charge(self, amount_cents: int, source_token: str) -> PaymentResult:
        if amount_cents <= 0:
            raise PaymentFailure(f"Invalid charge amount: {amount_cents}")
        if not source_token or not source_token.startswith(self.token_prefix):
            logger.warning("Sandbox declined a payment token without the test prefix")
            raise PaymentFailure("Sandbox card declined")
        if "DECLINE" in source_token.upper():
            raise PaymentFailure("Sandbox card declined")

        digest = hashlib.sha256(f"{source_token}:{amount_cents}:{len(self.charges)}".encode()).hexdigest()
        transaction_id = f"SANDBOX_{digest[:16].upper()}"
        self.charges[transaction_id] = amount_cents
        logger.info(f"Sandbox charged {amount_cents} cents ({transaction_id})")
        return PaymentResult(
            transaction_id=transaction_id,
            status="COMPLETED",
            card_brand="VISA",
            last4="1111",
            processor="sandbox",
        )

    def void(self, transaction_id: str) -> None:
        if transaction_id not in self.charges:
            raise PaymentFailure(f"Unknown transaction {transaction_id}")
        self.voided.append(transaction_id)
        logger.info(f"Sandbox voided {transaction_id}")


def get_payment_gateway(kind: Literal["sandbox"] = None) -> PaymentGateway:
    kind = kind or get_config().payment_backend
    if kind == "sandbox":
        return SandboxPaymentGateway()
    raise ValueError(f"Unknown payment backend: {kind}")
