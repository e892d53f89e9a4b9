"""
Payment Service Abstraction Layer
==================================

Provides a unified interface for payment operations across different payment providers.
"""

from .dummy_provider import DummyPaymentProvider
from .factory import PaymentFactory
from .interface import PaymentException, PaymentIntent, PaymentProviderInterface, PaymentStatus
from .signing import compute_signature, verify_signature
from .stripe_provider import StripeProvider

__all__ = [
    "PaymentProviderInterface",
    "PaymentIntent",
    "PaymentStatus",
    "PaymentException",
    "StripeProvider",
    "DummyPaymentProvider",
    "PaymentFactory",
    "compute_signature",
    "verify_signature",
]
