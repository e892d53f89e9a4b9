"""
Payment callback signatures.

The gateway signs ``"<gateway_order_id>|<gateway_payment_id>"`` with HMAC-SHA256
using the shared signing secret and sends the hex digest.
"""

import hashlib
import hmac
import logging


logger = logging.getLogger(__name__)


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    signed_payload = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(secret.encode("utf-8"), signed_payload.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_signature(secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    """Constant-time comparison of the expected and supplied signatures.

    An empty secret disables verification (development mode).
    """
    if not secret:
        logger.warning(
            f"PAYMENT_SIGNING_SECRET not configured; accepting unsigned confirmation for {gateway_order_id}"
        )
        return True
    if not signature:
        return False
    expected = compute_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected, signature)
