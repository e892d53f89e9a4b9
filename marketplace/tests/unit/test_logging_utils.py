import pytest

from utils.logging_utils import mask_value, sanitize_payload


@pytest.mark.unit
class TestMaskValue:
    def test_long_identifier_keeps_edges(self):
        assert mask_value("pay_1234567890abcdef") == "pay_...cdef"

    def test_short_value_fully_masked(self):
        assert mask_value("pay_1") == "***"

    def test_email(self):
        assert mask_value("buyer@example.com") == "bu***@example.com"

    def test_non_string_passthrough(self):
        assert mask_value(None) is None


@pytest.mark.unit
class TestSanitizePayload:
    def test_masks_gateway_secrets_only(self):
        payload = {
            "gateway_order_id": "gw_dummy_1700000000000",
            "gateway_payment_id": "pay_1234567890abcdef",
            "gateway_signature": "a" * 64,
            "amount": 100,
        }

        result = sanitize_payload(payload, ["gateway_order_id", "gateway_payment_id", "gateway_signature"])

        assert result == {
            "gateway_order_id": "gw_dummy_1700000000000",
            "gateway_payment_id": "pay_...cdef",
            "gateway_signature": "aaaa...aaaa",
        }

    def test_missing_keys_skipped(self):
        assert sanitize_payload({"amount": 1}, ["amount", "client_secret"]) == {"amount": 1}
