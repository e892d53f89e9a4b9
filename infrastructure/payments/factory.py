"""
Payment Provider Factory
=========================

Factory pattern for creating payment provider instances based on configuration.
"""

import logging
from typing import Literal

from django.conf import settings

from .dummy_provider import DummyPaymentProvider
from .interface import PaymentProviderInterface
from .stripe_provider import StripeProvider

logger = logging.getLogger(__name__)

PaymentBackend = Literal["stripe", "dummy"]


class PaymentFactory:
    """
    Factory for creating payment provider instances.

    Usage:
        # In settings.py
        PAYMENT_PROVIDER = 'stripe'  # or 'dummy' for development

        # In your code
        payment_provider = PaymentFactory.create()
    """

    @staticmethod
    def create(backend: PaymentBackend | None = None) -> PaymentProviderInterface:
        """
        Create a payment provider instance.

        Args:
            backend: Payment backend type ('stripe' or 'dummy')
                    If None, reads from settings.PAYMENT_PROVIDER

        Returns:
            PaymentProviderInterface implementation

        Raises:
            ValueError: If backend type is invalid
        """
        backend_type = backend or getattr(settings, "PAYMENT_PROVIDER", "dummy")

        # No gateway keys means development mode
        if backend_type == "stripe" and not getattr(settings, "STRIPE_SECRET_KEY", ""):
            logger.warning("PAYMENT_PROVIDER is 'stripe' but STRIPE_SECRET_KEY is empty; using dummy provider")
            backend_type = "dummy"

        logger.info(f"Creating payment provider: {backend_type}")

        if backend_type == "stripe":
            return StripeProvider()
        elif backend_type == "dummy":
            return DummyPaymentProvider()
        else:
            raise ValueError(f"Invalid payment provider: {backend_type}. Use 'stripe' or 'dummy'")
