import re
import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.db import IntegrityError
from django.test import TestCase

from infrastructure.events import InMemoryEventBus
from infrastructure.payments import DummyPaymentProvider, PaymentException, PaymentStatus
from marketplace.catalog.domain.services import InventoryService
from marketplace.models import Order, OrderItem
from marketplace.ordering.domain.exceptions import ExternalServiceError, InsufficientStockError
from marketplace.ordering.domain.services import OrderService
from marketplace.tests.factories import (
    AdminFactory,
    OrderFactory,
    OrderItemFactory,
    ProductFactory,
    UserFactory,
    VendorFactory,
    VendorOfferFactory,
    fake_address,
)
from utils.rbac import ACTOR_ADMIN, ACTOR_BUYER, ACTOR_VENDOR, build_actor_context
from utils.transaction_utils import RetryPolicy


class OrderServiceTestCase(TestCase):
    def setUp(self):
        self.buyer = UserFactory()
        self.actor = build_actor_context(self.buyer, as_role=ACTOR_BUYER)

        self.vendor_a = VendorFactory(business_name="Alpha Traders")
        self.vendor_b = VendorFactory(business_name="Beta Goods")
        self.offer_a = VendorOfferFactory(
            vendor=self.vendor_a,
            product=ProductFactory(name="Brass Lamp", images="https://cdn.example.com/lamp.jpg"),
            price=Decimal("100.00"),
            shipping_price=Decimal("10.00"),
            stock=10,
        )
        self.offer_b = VendorOfferFactory(
            vendor=self.vendor_b, price=Decimal("20.00"), shipping_price=Decimal("0.00"), stock=5
        )

        self.event_bus = InMemoryEventBus()
        self.provider = DummyPaymentProvider(signing_secret="secret")
        self.service = OrderService(
            payment_provider=self.provider,
            inventory_service=InventoryService(),
            event_bus=self.event_bus,
            retry_policy=RetryPolicy(base_delay=0, sleep=lambda seconds: None),
        )
        self.address = fake_address()

    def place(self, items, payment_method="cod", **kwargs):
        return self.service.create_order(
            self.actor, items=items, shipping_address=self.address, payment_method=payment_method, **kwargs
        )

    def lines(self, qty_a=2, qty_b=1):
        return [
            {"offer_id": str(self.offer_a.id), "quantity": qty_a},
            {"offer_id": str(self.offer_b.id), "quantity": qty_b},
        ]


class OrderCreationTest(OrderServiceTestCase):
    def test_cod_order_reserves_stock_immediately(self):
        result = self.place(self.lines())

        self.assertTrue(result.ok, result.error_detail)
        order = result.value.order
        self.assertIsNone(result.value.payment_intent)
        self.assertRegex(order.order_number, r"^ORD-\d{13}-\d{4}$")
        self.assertEqual(order.status, "pending")
        self.assertEqual(order.payment_status, "pending")
        self.assertEqual(order.total_amount, Decimal("220.00"))
        self.assertEqual(order.shipping_price, Decimal("20.00"))
        self.assertEqual(order.grand_total, Decimal("240.00"))
        self.assertEqual(order.currency, "INR")

        self.offer_a.refresh_from_db()
        self.offer_b.refresh_from_db()
        self.assertEqual(self.offer_a.stock, 8)
        self.assertEqual(self.offer_b.stock, 4)
        self.assertTrue(all(item.stock_reserved for item in order.items.all()))

    def test_line_items_freeze_price_and_product_details(self):
        order = self.place(self.lines()).value.order

        item = order.items.get(offer=self.offer_a)
        self.assertEqual(item.vendor, self.vendor_a)
        self.assertEqual(item.unit_price, Decimal("100.00"))
        self.assertEqual(item.total_price, Decimal("200.00"))
        self.assertEqual(item.product_name, "Brass Lamp")
        self.assertEqual(item.product_image["url"], "https://cdn.example.com/lamp.jpg")

        # Later catalog edits do not touch the order
        self.offer_a.price = Decimal("150.00")
        self.offer_a.save()
        item.refresh_from_db()
        self.assertEqual(item.unit_price, Decimal("100.00"))

    def test_billing_defaults_to_shipping_address(self):
        order = self.place(self.lines()).value.order
        self.assertEqual(order.billing_address, order.shipping_address)

    def test_order_placed_event_published(self):
        order = self.place(self.lines()).value.order

        events = self.event_bus.events_of_type("order.placed")
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["payload"]["order_id"], str(order.id))
        self.assertEqual(events[0]["payload"]["grand_total"], "240.00")

    def test_gateway_order_gets_payment_intent_without_touching_stock(self):
        result = self.place(self.lines(), payment_method="gateway")

        self.assertTrue(result.ok, result.error_detail)
        intent = result.value.payment_intent
        order = Order.objects.get(pk=result.value.order.pk)
        self.assertTrue(intent.intent_id.startswith("gw_dummy_"))
        self.assertEqual(intent.amount, 24000)
        self.assertEqual(intent.status, PaymentStatus.PENDING)
        self.assertEqual(order.gateway_order_id, intent.intent_id)

        self.offer_a.refresh_from_db()
        self.assertEqual(self.offer_a.stock, 10)
        self.assertFalse(order.items.filter(stock_reserved=True).exists())

    def test_unavailable_offer_rejected(self):
        self.offer_b.approval_status = "pending"
        self.offer_b.save()

        result = self.place(self.lines())

        self.assertFalse(result.ok)
        self.assertEqual(result.error, "offer_not_available")
        self.assertIn(str(self.offer_b.id), result.error_detail)
        self.assertEqual(Order.objects.count(), 0)

    def test_inactive_or_unknown_offer_rejected(self):
        self.offer_a.is_active = False
        self.offer_a.save()
        self.assertEqual(self.place(self.lines()).error, "offer_not_available")

        result = self.place([{"offer_id": str(uuid.uuid4()), "quantity": 1}])
        self.assertEqual(result.error, "offer_not_available")

    def test_insufficient_stock_leaves_everything_untouched(self):
        result = self.place(self.lines(qty_a=2, qty_b=6))

        self.assertFalse(result.ok)
        self.assertEqual(result.error, "insufficient_stock")
        self.assertIn("Available: 5", result.error_detail)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)
        self.offer_a.refresh_from_db()
        self.assertEqual(self.offer_a.stock, 10)

    def test_failed_reservation_rolls_back_earlier_lines(self):
        inventory = self.service.inventory_service
        real_reserve = inventory.reserve
        calls = []

        def reserve_then_fail(offer_id, quantity):
            if calls:
                raise InsufficientStockError(offer_id, "Racing product", 0)
            calls.append(offer_id)
            real_reserve(offer_id, quantity)

        inventory.reserve = reserve_then_fail

        result = self.place(self.lines())

        self.assertEqual(result.error, "insufficient_stock")
        self.assertEqual(len(calls), 1)
        self.assertEqual(Order.objects.count(), 0)
        self.offer_a.refresh_from_db()
        self.offer_b.refresh_from_db()
        self.assertEqual((self.offer_a.stock, self.offer_b.stock), (10, 5))

    def test_duplicate_offer_rejected(self):
        items = [
            {"offer_id": str(self.offer_a.id), "quantity": 1},
            {"offer_id": str(self.offer_a.id), "quantity": 2},
        ]
        result = self.place(items)

        self.assertEqual(result.error, "duplicate_item")
        self.assertEqual(Order.objects.count(), 0)

    def test_validation_errors_name_the_field(self):
        result = self.place([])
        self.assertEqual(result.error, "validation_error")
        self.assertIn("at least one item", result.error_detail)

        result = self.place(self.lines(), payment_method="barter")
        self.assertEqual(result.error, "validation_error")
        self.assertIn("payment_method", result.error_detail)

        self.address.pop("city")
        result = self.place(self.lines())
        self.assertEqual(result.error, "validation_error")
        self.assertIn("city", result.error_detail)

    def test_gateway_failure_keeps_order_pending(self):
        self.service.payment_provider = MagicMock()
        self.service.payment_provider.create_intent.side_effect = PaymentException("gateway timeout")

        result = self.place(self.lines(), payment_method="gateway")

        self.assertFalse(result.ok)
        self.assertEqual(result.error, "gateway_error")
        order = Order.objects.get()
        self.assertIn(order.order_number, result.error_detail)
        self.assertEqual(order.status, "pending")
        self.assertIsNone(order.gateway_order_id)
        self.assertEqual(self.event_bus.events_of_type("order.placed"), [])

        # Buyer retries payment initiation once the gateway is back
        self.service.payment_provider = self.provider
        retry = self.service.create_payment_intent(self.actor, order.id)

        self.assertTrue(retry.ok, retry.error_detail)
        order.refresh_from_db()
        self.assertEqual(order.gateway_order_id, retry.value.payment_intent.intent_id)

    def test_gateway_exception_is_wrapped(self):
        order = OrderFactory(buyer=self.buyer, payment_method="gateway")
        self.service.payment_provider = MagicMock()
        self.service.payment_provider.create_intent.side_effect = PaymentException("card network down")

        with self.assertRaises(ExternalServiceError) as ctx:
            self.service._request_intent(order)

        self.assertEqual(ctx.exception.code, "gateway_error")
        self.assertIsInstance(ctx.exception.__cause__, PaymentException)
        self.assertIn(order.order_number, ctx.exception.detail)

    def test_unexpected_database_error_returns_internal_error(self):
        collision = IntegrityError("UNIQUE constraint failed: marketplace_order.order_number")

        with patch.object(self.service.inventory_service, "reserve_items", side_effect=collision):
            result = self.place(self.lines())

        self.assertFalse(result.ok)
        self.assertEqual(result.error, "internal_error")
        self.assertFalse(Order.objects.exists())
        self.offer_a.refresh_from_db()
        self.assertEqual(self.offer_a.stock, 10)

    def test_payment_intent_reuses_stored_gateway_order(self):
        placed = self.place(self.lines(), payment_method="gateway").value

        result = self.service.create_payment_intent(self.actor, placed.order.id)

        self.assertTrue(result.ok)
        self.assertIsNone(result.value.payment_intent)
        self.assertEqual(result.value.order.gateway_order_id, placed.payment_intent.intent_id)

    def test_payment_intent_rejected_for_cod_and_paid_orders(self):
        cod_order = self.place(self.lines()).value.order
        self.assertEqual(self.service.create_payment_intent(self.actor, cod_order.id).error, "validation_error")

        paid = OrderFactory(buyer=self.buyer, payment_method="gateway", payment_status="completed")
        self.assertEqual(self.service.create_payment_intent(self.actor, paid.id).error, "payment_conflict")


class OrderRetrievalTest(OrderServiceTestCase):
    def setUp(self):
        super().setUp()
        self.order = self.place(self.lines()).value.order

    def test_buyer_sees_own_order(self):
        result = self.service.get_order(self.actor, self.order.id)

        self.assertTrue(result.ok)
        self.assertEqual(result.value.items.count(), 2)

    def test_other_buyer_is_denied(self):
        stranger = build_actor_context(UserFactory(), as_role=ACTOR_BUYER)

        result = self.service.get_order(stranger, self.order.id)

        self.assertEqual(result.error, "permission_denied")

    def test_unknown_or_malformed_id_is_not_found(self):
        self.assertEqual(self.service.get_order(self.actor, uuid.uuid4()).error, "order_not_found")
        self.assertEqual(self.service.get_order(self.actor, "not-a-uuid").error, "order_not_found")

    def test_vendor_sees_only_own_items(self):
        vendor_actor = build_actor_context(self.vendor_a.user, as_role=ACTOR_VENDOR)

        result = self.service.get_order(vendor_actor, self.order.id)

        self.assertTrue(result.ok)
        items = list(result.value.items.all())
        self.assertEqual([item.vendor_id for item in items], [self.vendor_a.id])

    def test_vendor_without_items_is_denied(self):
        outsider = build_actor_context(VendorFactory().user, as_role=ACTOR_VENDOR)
        self.assertEqual(self.service.get_order(outsider, self.order.id).error, "permission_denied")

    def test_admin_sees_everything(self):
        admin = build_actor_context(AdminFactory(), as_role=ACTOR_ADMIN)

        result = self.service.get_order(admin, self.order.id)

        self.assertTrue(result.ok)
        self.assertEqual(result.value.items.count(), 2)

    def test_list_is_scoped_and_paginated(self):
        for _ in range(3):
            OrderFactory(buyer=self.buyer)
        OrderFactory()  # someone else's

        result = self.service.list_orders(self.actor, page=1, limit=3)

        self.assertTrue(result.ok)
        self.assertEqual(result.value["count"], 4)
        self.assertEqual(result.value["num_pages"], 2)
        self.assertEqual(len(result.value["results"]), 3)
        self.assertTrue(all(order.buyer_id == self.buyer.id for order in result.value["results"]))

    def test_list_filters(self):
        OrderFactory(buyer=self.buyer, status="shipped", payment_status="completed")

        shipped = self.service.list_orders(self.actor, status="shipped")
        self.assertEqual(shipped.value["count"], 1)

        paid = self.service.list_orders(self.actor, payment_status="completed")
        self.assertEqual(paid.value["count"], 1)

        self.assertEqual(self.service.list_orders(self.actor, status="lost").error, "validation_error")

    def test_vendor_list_counts_each_order_once(self):
        second_item_order = OrderFactory()
        OrderItemFactory(order=second_item_order, offer=self.offer_a)
        OrderItemFactory(order=second_item_order, offer=VendorOfferFactory(vendor=self.vendor_a))
        vendor_actor = build_actor_context(self.vendor_a.user, as_role=ACTOR_VENDOR)

        result = self.service.list_orders(vendor_actor)

        self.assertEqual(result.value["count"], 2)

    def test_admin_lists_all_orders(self):
        OrderFactory()
        admin = build_actor_context(AdminFactory(), as_role=ACTOR_ADMIN)

        self.assertEqual(self.service.list_orders(admin).value["count"], 2)


class OrderNumberTest(OrderServiceTestCase):
    def test_order_numbers_are_unique(self):
        items = [{"offer_id": str(self.offer_b.id), "quantity": 1}]
        numbers = {self.place(items).value.order.order_number for _ in range(3)}
        self.assertEqual(len(numbers), 3)
        self.assertTrue(all(re.match(r"^ORD-", number) for number in numbers))
