"""
Stripe Payment Provider
========================

Concrete implementation of PaymentProviderInterface using Stripe PaymentIntents.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .interface import PaymentException, PaymentIntent, PaymentProviderInterface, PaymentStatus, to_minor_units
from .signing import verify_signature

logger = logging.getLogger(__name__)


class StripeProvider(PaymentProviderInterface):
    """
    Stripe payment provider implementation.

    Configuration (in settings.py):
        STRIPE_SECRET_KEY: Stripe secret API key
        PAYMENT_SIGNING_SECRET: Shared secret for payment callback signatures
    """

    def __init__(self):
        """Initialize Stripe provider with API credentials."""
        stripe.api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        self.signing_secret = getattr(settings, "PAYMENT_SIGNING_SECRET", "")

        if not stripe.api_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(
            (
                stripe.RateLimitError,
                stripe.APIConnectionError,
                stripe.APIError,
            )
        ),
        reraise=True,
    )
    def _create_payment_intent_api(self, **kwargs):
        """Internal method to create a PaymentIntent with retries."""
        return stripe.PaymentIntent.create(**kwargs)

    def create_intent(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PaymentIntent:
        """
        Create a Stripe PaymentIntent.

        Args:
            amount: Payment amount in major currency unit (e.g., 220.00 INR)
            currency: ISO currency code
            reference: Order number, sent as metadata and idempotency key
            metadata: Custom metadata

        Returns:
            PaymentIntent object

        Raises:
            PaymentException: If intent creation fails
        """
        try:
            amount_minor = to_minor_units(amount)
            intent_metadata = {"reference": reference, **(metadata or {})}

            intent = self._create_payment_intent_api(
                amount=amount_minor,
                currency=currency.lower(),
                metadata=intent_metadata,
                idempotency_key=f"intent-{reference}",
            )

            logger.info(f"Created Stripe payment intent: {intent.id}")

            return PaymentIntent(
                intent_id=intent.id,
                amount=amount_minor,
                currency=currency.upper(),
                status=self._map_stripe_status(intent.status),
                client_secret=getattr(intent, "client_secret", None),
                metadata=intent_metadata,
            )

        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {str(e)}")
            raise PaymentException(f"Failed to create payment intent: {str(e)}") from e
        except Exception as e:
            logger.error(f"Unexpected error creating payment intent: {str(e)}")
            raise PaymentException(f"Payment intent creation error: {str(e)}") from e

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        return verify_signature(self.signing_secret, gateway_order_id, gateway_payment_id, signature)

    @staticmethod
    def _map_stripe_status(stripe_status: str) -> PaymentStatus:
        """Map Stripe PaymentIntent status to PaymentStatus enum."""
        status_map = {
            "requires_payment_method": PaymentStatus.PENDING,
            "requires_confirmation": PaymentStatus.PENDING,
            "requires_action": PaymentStatus.PENDING,
            "processing": PaymentStatus.PROCESSING,
            "succeeded": PaymentStatus.SUCCEEDED,
            "canceled": PaymentStatus.CANCELED,
        }
        return status_map.get(stripe_status, PaymentStatus.PENDING)
