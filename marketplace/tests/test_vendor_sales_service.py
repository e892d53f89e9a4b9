from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from marketplace.models import Order, VendorPayment
from marketplace.ordering.domain.services import VendorSalesService
from marketplace.tests.factories import (
    AdminFactory,
    OrderFactory,
    OrderItemFactory,
    UserFactory,
    VendorFactory,
    VendorOfferFactory,
    VendorPaymentFactory,
)
from utils.rbac import ACTOR_ADMIN, ACTOR_BUYER, build_actor_context


@override_settings(VENDOR_PAYOUT_RATE=Decimal("0.80"))
class VendorSalesServiceTest(TestCase):
    def setUp(self):
        self.admin = build_actor_context(AdminFactory(), as_role=ACTOR_ADMIN)
        self.vendor = VendorFactory(business_name="Alpha Traders")
        self.other_vendor = VendorFactory()
        self.offer = VendorOfferFactory(vendor=self.vendor, price=Decimal("25.00"))
        self.service = VendorSalesService()

        # Paid and delivered: counts everywhere
        self.delivered = OrderFactory(status="delivered", payment_status="completed")
        OrderItemFactory(order=self.delivered, offer=self.offer, quantity=2)  # 50.00
        OrderItemFactory(order=self.delivered, offer=VendorOfferFactory(vendor=self.other_vendor), quantity=1)

        # Paid but still shipping: payouts only
        self.shipped = OrderFactory(status="shipped", payment_status="completed")
        OrderItemFactory(order=self.shipped, offer=self.offer, quantity=4)  # 100.00

        # Unpaid: never counts
        unpaid = OrderFactory(status="pending", payment_status="pending")
        OrderItemFactory(order=unpaid, offer=self.offer, quantity=10)

    def test_sales_report_counts_delivered_paid_orders_for_this_vendor(self):
        result = self.service.sales_report(self.admin, self.vendor.id)

        self.assertTrue(result.ok, result.error_detail)
        report = result.value
        self.assertEqual(report["vendor"]["business_name"], "Alpha Traders")
        self.assertEqual(report["summary"]["total_sales"], Decimal("50.00"))
        self.assertEqual(report["summary"]["total_orders"], 1)
        self.assertEqual(report["summary"]["average_order_value"], Decimal("50.00"))
        self.assertEqual(report["sales_by_product"][self.offer.product.name], {"quantity": 2, "sales": Decimal("50.00")})
        self.assertEqual([row["id"] for row in report["orders"]], [self.delivered.id])

    def test_sales_report_window(self):
        Order.objects.filter(pk=self.delivered.pk).update(created_at=timezone.now() - timedelta(days=45))

        default_window = self.service.sales_report(self.admin, self.vendor.id)
        self.assertEqual(default_window.value["summary"]["total_orders"], 0)

        start = (timezone.now() - timedelta(days=60)).date().isoformat()
        wide_window = self.service.sales_report(self.admin, self.vendor.id, start_date=start)
        self.assertEqual(wide_window.value["summary"]["total_orders"], 1)

    def test_sales_report_rejects_inverted_or_malformed_dates(self):
        inverted = self.service.sales_report(self.admin, self.vendor.id, start_date="2025-02-01", end_date="2025-01-01")
        self.assertEqual(inverted.error, "validation_error")

        malformed = self.service.sales_report(self.admin, self.vendor.id, start_date="last tuesday")
        self.assertEqual(malformed.error, "validation_error")

    def test_unknown_vendor(self):
        self.assertEqual(self.service.sales_report(self.admin, 999999).error, "vendor_not_found")

    def test_admin_only(self):
        buyer = build_actor_context(UserFactory(), as_role=ACTOR_BUYER)

        self.assertEqual(self.service.sales_report(buyer, self.vendor.id).error, "permission_denied")
        self.assertEqual(self.service.list_vendor_payments(buyer).error, "permission_denied")

    def test_generate_payment_uses_payout_rate_on_paid_sales(self):
        start = (timezone.now() - timedelta(days=7)).isoformat()
        end = timezone.now().isoformat()

        result = self.service.generate_vendor_payment(self.admin, self.vendor.id, start, end, notes="Weekly")

        self.assertTrue(result.ok, result.error_detail)
        self.assertEqual(result.value["total_sales"], Decimal("150.00"))
        self.assertEqual(result.value["payment_amount"], Decimal("120.00"))
        payment = result.value["payment"]
        self.assertEqual(payment.status, "pending")
        self.assertEqual(payment.amount, Decimal("120.00"))
        self.assertEqual(payment.notes, "Weekly")

    def test_generate_payment_requires_period(self):
        result = self.service.generate_vendor_payment(self.admin, self.vendor.id, None, None)
        self.assertEqual(result.error, "validation_error")
        self.assertEqual(VendorPayment.objects.count(), 0)

    def test_process_payment_stamps_vendor(self):
        payment = VendorPaymentFactory(vendor=self.vendor)

        result = self.service.process_vendor_payment(self.admin, payment.id, transaction_id="NEFT-123")

        self.assertTrue(result.ok)
        payment.refresh_from_db()
        self.vendor.refresh_from_db()
        self.assertEqual(payment.status, "completed")
        self.assertEqual(payment.transaction_id, "NEFT-123")
        self.assertEqual(self.vendor.last_payment_date, payment.payment_date)

    def test_completed_payment_cannot_be_processed_again(self):
        paid_at = timezone.now() - timedelta(days=3)
        payment = VendorPaymentFactory(
            vendor=self.vendor, status="completed", payment_date=paid_at, transaction_id="NEFT-001"
        )

        result = self.service.process_vendor_payment(self.admin, payment.id, transaction_id="NEFT-999")

        self.assertEqual(result.error, "conflict")
        payment.refresh_from_db()
        self.vendor.refresh_from_db()
        self.assertEqual(payment.transaction_id, "NEFT-001")
        self.assertEqual(payment.payment_date, paid_at)
        self.assertIsNone(self.vendor.last_payment_date)

    def test_failed_payment_cannot_be_processed(self):
        payment = VendorPaymentFactory(vendor=self.vendor, status="failed")

        self.assertEqual(self.service.process_vendor_payment(self.admin, payment.id).error, "conflict")

    def test_unexpected_error_returns_internal_error(self):
        with patch.object(VendorPayment.objects, "create", side_effect=DatabaseError("connection reset")):
            result = self.service.generate_vendor_payment(self.admin, self.vendor.id, "2024-01-01", "2024-01-31")

        self.assertEqual(result.error, "internal_error")
        self.assertIn("connection reset", result.error_detail)

    def test_process_unknown_payment(self):
        self.assertEqual(self.service.process_vendor_payment(self.admin, "nope").error, "payment_not_found")

    def test_list_payments_filters(self):
        VendorPaymentFactory(vendor=self.vendor, status="completed")
        VendorPaymentFactory(vendor=self.vendor)
        VendorPaymentFactory(vendor=self.other_vendor)

        self.assertEqual(len(self.service.list_vendor_payments(self.admin).value), 3)
        self.assertEqual(len(self.service.list_vendor_payments(self.admin, vendor_id=self.vendor.id).value), 2)
        self.assertEqual(
            len(self.service.list_vendor_payments(self.admin, vendor_id=self.vendor.id, status="pending").value), 1
        )
        self.assertEqual(self.service.list_vendor_payments(self.admin, status="lost").error, "validation_error")
        self.assertEqual(self.service.list_vendor_payments(self.admin, vendor_id="abc").error, "validation_error")
