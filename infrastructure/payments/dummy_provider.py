"""
Dummy Payment Provider
=======================

Development-mode gateway used when no gateway keys are configured. Issues
``gw_dummy_<millis>`` intent ids without any network call.
"""

import logging
import threading
import time
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings

from .interface import PaymentIntent, PaymentProviderInterface, PaymentStatus, to_minor_units
from .signing import verify_signature


logger = logging.getLogger(__name__)


class DummyPaymentProvider(PaymentProviderInterface):
    _lock = threading.Lock()
    _last_millis = 0

    def __init__(self, signing_secret: Optional[str] = None):
        self.signing_secret = (
            signing_secret if signing_secret is not None else getattr(settings, "PAYMENT_SIGNING_SECRET", "")
        )
        logger.warning("Using dummy payment provider; no real payments will be taken")

    def create_intent(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PaymentIntent:
        intent_id = f"gw_dummy_{self._next_millis()}"
        logger.info(f"Created dummy payment intent {intent_id} for {reference}")
        return PaymentIntent(
            intent_id=intent_id,
            amount=to_minor_units(amount),
            currency=currency.upper(),
            status=PaymentStatus.PENDING,
            metadata={"reference": reference, **(metadata or {})},
        )

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        return verify_signature(self.signing_secret, gateway_order_id, gateway_payment_id, signature)

    @classmethod
    def _next_millis(cls) -> int:
        # Strictly increasing so two intents never share an id
        with cls._lock:
            millis = max(int(time.time() * 1000), cls._last_millis + 1)
            cls._last_millis = millis
            return millis
