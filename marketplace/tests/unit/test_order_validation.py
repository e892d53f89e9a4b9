import re
import uuid

import pytest

from marketplace.ordering.domain.exceptions import DuplicateItemError, OrderValidationError
from marketplace.ordering.domain.services.order_service import (
    MAX_PAGE_SIZE,
    generate_order_number,
    parse_line_items,
    parse_pagination,
    validate_address,
)

ADDRESS = {
    "name": "Asha Rao",
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "zip_code": "560001",
    "country": "India",
    "phone": "+919800000000",
}


@pytest.mark.unit
class TestCheckoutValidation:
    def test_order_number_format(self):
        assert re.fullmatch(r"ORD-\d{13}-\d{4}", generate_order_number())

    def test_address_is_trimmed_to_known_fields(self):
        address = dict(ADDRESS, city="  Bengaluru ", landmark="Near the park")
        cleaned = validate_address(address, "shipping_address")
        assert cleaned["city"] == "Bengaluru"
        assert "landmark" not in cleaned

    def test_address_missing_fields_are_named(self):
        address = dict(ADDRESS)
        del address["zip_code"]
        address["phone"] = " "

        with pytest.raises(OrderValidationError) as exc_info:
            validate_address(address, "shipping_address")

        assert exc_info.value.field == "shipping_address"
        assert "zip_code" in exc_info.value.detail
        assert "phone" in exc_info.value.detail

    @pytest.mark.parametrize("address", [None, {}, "12 MG Road"])
    def test_address_required(self, address):
        with pytest.raises(OrderValidationError):
            validate_address(address, "shipping_address")

    def test_line_items_parse_offer_ids(self):
        offer_id = uuid.uuid4()
        assert parse_line_items([{"offer_id": str(offer_id), "quantity": 2}]) == [
            {"offer_id": offer_id, "quantity": 2}
        ]

    @pytest.mark.parametrize("items", [None, [], {"offer_id": "x"}])
    def test_line_items_must_be_non_empty_list(self, items):
        with pytest.raises(OrderValidationError) as exc_info:
            parse_line_items(items)
        assert exc_info.value.field == "items"

    @pytest.mark.parametrize("quantity", [0, -1, "2", 1.5, True, None])
    def test_quantity_must_be_positive_integer(self, quantity):
        with pytest.raises(OrderValidationError) as exc_info:
            parse_line_items([{"offer_id": str(uuid.uuid4()), "quantity": quantity}])
        assert exc_info.value.field == "items[0].quantity"

    def test_malformed_offer_id(self):
        with pytest.raises(OrderValidationError) as exc_info:
            parse_line_items([{"offer_id": "not-a-uuid", "quantity": 1}])
        assert exc_info.value.field == "items[0].offer_id"

    def test_duplicate_offer_rejected(self):
        offer_id = str(uuid.uuid4())
        with pytest.raises(DuplicateItemError) as exc_info:
            parse_line_items([{"offer_id": offer_id, "quantity": 1}, {"offer_id": offer_id.upper(), "quantity": 2}])
        assert exc_info.value.code == "duplicate_item"

    def test_pagination_defaults(self, settings):
        settings.ORDER_LIST_DEFAULT_PAGE_SIZE = 10
        assert parse_pagination(None, None) == (1, 10)
        assert parse_pagination("3", "25") == (3, 25)

    def test_pagination_limit_is_capped(self):
        assert parse_pagination(1, 1000) == (1, MAX_PAGE_SIZE)

    @pytest.mark.parametrize("page,limit", [("abc", 10), (0, 10), (1, -5)])
    def test_pagination_rejects_bad_values(self, page, limit):
        with pytest.raises(OrderValidationError):
            parse_pagination(page, limit)
