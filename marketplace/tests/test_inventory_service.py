import uuid

from django.test import TestCase

from marketplace.catalog.domain.services import InventoryService
from marketplace.ordering.domain.exceptions import InsufficientStockError, OfferUnavailableError, OrderValidationError
from marketplace.tests.factories import OrderFactory, OrderItemFactory, VendorOfferFactory


class InventoryServiceTest(TestCase):
    def setUp(self):
        self.offer = VendorOfferFactory(stock=5)
        self.service = InventoryService()

    def test_reserve_decrements_stock(self):
        self.service.reserve(self.offer.id, 3)

        self.offer.refresh_from_db()
        self.assertEqual(self.offer.stock, 2)

    def test_reserve_entire_stock(self):
        self.service.reserve(self.offer.id, 5)

        self.offer.refresh_from_db()
        self.assertEqual(self.offer.stock, 0)

    def test_overdraw_is_rejected_and_stock_unchanged(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            self.service.reserve(self.offer.id, 6)

        self.assertEqual(ctx.exception.available, 5)
        self.assertIn(self.offer.product.name, ctx.exception.detail)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.stock, 5)

    def test_reserve_unknown_offer(self):
        with self.assertRaises(OfferUnavailableError):
            self.service.reserve(uuid.uuid4(), 1)

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(OrderValidationError):
            self.service.reserve(self.offer.id, 0)
        with self.assertRaises(OrderValidationError):
            self.service.release(self.offer.id, -2)

    def test_release_increments_stock(self):
        self.service.release(self.offer.id, 4)

        self.offer.refresh_from_db()
        self.assertEqual(self.offer.stock, 9)

    def test_reserve_items_flags_each_item_once(self):
        order = OrderFactory()
        other_offer = VendorOfferFactory(stock=10)
        first = OrderItemFactory(order=order, offer=self.offer, quantity=2)
        second = OrderItemFactory(order=order, offer=other_offer, quantity=1)

        reserved = self.service.reserve_items(order.items.all())
        self.assertEqual({item.pk for item in reserved}, {first.pk, second.pk})

        # Already reserved items are skipped
        self.assertEqual(self.service.reserve_items(order.items.all()), [])

        self.offer.refresh_from_db()
        other_offer.refresh_from_db()
        self.assertEqual(self.offer.stock, 3)
        self.assertEqual(other_offer.stock, 9)

        first.refresh_from_db()
        self.assertTrue(first.stock_reserved)
        self.assertIsNotNone(first.reserved_at)

    def test_release_items_only_touches_reserved_items(self):
        order = OrderFactory()
        reserved_item = OrderItemFactory(order=order, offer=self.offer, quantity=2, stock_reserved=True)
        untouched_offer = VendorOfferFactory(stock=10)
        OrderItemFactory(order=order, offer=untouched_offer, quantity=4)

        released = self.service.release_items(order.items.all())

        self.assertEqual([item.pk for item in released], [reserved_item.pk])
        self.offer.refresh_from_db()
        untouched_offer.refresh_from_db()
        self.assertEqual(self.offer.stock, 7)
        self.assertEqual(untouched_offer.stock, 10)

        reserved_item.refresh_from_db()
        self.assertFalse(reserved_item.stock_reserved)
        self.assertIsNone(reserved_item.reserved_at)
