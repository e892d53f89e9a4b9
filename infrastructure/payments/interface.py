"""
Payment Provider Interface
===========================

Abstract base class defining the contract the order engine consumes from a
payment gateway: create a payment intent and verify a payment callback.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass
class PaymentIntent:
    """
    Represents a payment intent created at the gateway.

    Attributes:
        intent_id: Gateway order/intent identifier stored on the Order
        amount: Payment amount in smallest currency unit
        currency: ISO currency code
        status: Current payment status
        client_secret: Secret the client uses to complete the payment, if any
        metadata: Additional custom data
    """

    intent_id: str
    amount: int
    currency: str
    status: PaymentStatus
    client_secret: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (220.50) to the smallest currency unit (22050)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentProviderInterface(ABC):
    """
    Abstract interface for payment provider operations.

    Concrete implementations:
        - StripeProvider: Stripe PaymentIntents
        - DummyPaymentProvider: development mode, no network calls
    """

    @abstractmethod
    def create_intent(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PaymentIntent:
        """
        Create a payment intent sized to ``amount``.

        Args:
            amount: Payment amount in major currency unit
            currency: ISO currency code
            reference: Merchant reference (the order number)
            metadata: Custom data to attach

        Returns:
            PaymentIntent with the gateway identifier

        Raises:
            PaymentException: If the gateway call fails
        """
        pass

    @abstractmethod
    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        """
        Verify a payment callback signature.

        Returns:
            True when the signature matches (or verification is disabled)
        """
        pass


class PaymentException(Exception):
    """Base exception for payment operations."""

    pass
