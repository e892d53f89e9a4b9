from typing import Dict, Iterable

# Gateway fields that must never reach the logs in clear text
SENSITIVE_GATEWAY_FIELDS = ("gateway_payment_id", "gateway_signature", "client_secret")


def mask_value(value: str) -> str:
    if not isinstance(value, str):
        return value
    if '@' in value:  # email
        name, _, domain = value.partition('@')
        return (name[:2] + '***@' + domain) if name else '***@' + domain
    if len(value) > 12:
        return value[:4] + '...' + value[-4:]
    return '***'


def sanitize_payload(payload: Dict, allowed_keys: Iterable[str]) -> Dict:
    """Return a filtered copy of payload with only allowed keys, masking gateway secrets."""
    result = {}
    for key in allowed_keys:
        if key not in payload:
            continue
        value = payload[key]
        result[key] = mask_value(value) if key in SENSITIVE_GATEWAY_FIELDS else value
    return result
