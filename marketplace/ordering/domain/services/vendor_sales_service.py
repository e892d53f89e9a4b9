"""
VendorSalesService - Vendor Sales Reports and Payouts

Admin-only reporting over a vendor's settled line items, and the payout
records generated from them.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from marketplace.catalog.domain.models import Vendor
from marketplace.ordering.domain.exceptions import (
    OrderAuthorizationError,
    OrderConflictError,
    OrderError,
    OrderValidationError,
    VendorNotFoundError,
    VendorPaymentNotFoundError,
)
from marketplace.ordering.domain.models import Order, OrderItem, VendorPayment
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.rbac import ActorContext

CENTS = Decimal("0.01")
DEFAULT_REPORT_DAYS = 30


@dataclass
class Period:
    start: datetime
    end: datetime


def _to_datetime(value, field: str, end_of_day: bool = False) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, str):
        # Bare dates first so an end date covers the whole day
        try:
            parsed = parse_date(value) or parse_datetime(value)
        except ValueError:
            parsed = None
        if parsed is None:
            raise OrderValidationError(f"{field} must be an ISO 8601 date or datetime", field=field)
        value = parsed
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, time.max if end_of_day else time.min)
    else:
        raise OrderValidationError(f"{field} must be a date", field=field)
    if timezone.is_naive(result):
        result = timezone.make_aware(result)
    return result


def resolve_period(start_date=None, end_date=None, require: bool = False) -> Period:
    """Resolve a reporting window; defaults to the last 30 days."""
    start = _to_datetime(start_date, "start_date")
    end = _to_datetime(end_date, "end_date", end_of_day=True)
    if require and (start is None or end is None):
        raise OrderValidationError("start_date and end_date are required", field="start_date")

    end = end or timezone.now()
    start = start or end - timedelta(days=DEFAULT_REPORT_DAYS)
    if start > end:
        raise OrderValidationError("start_date must be before end_date", field="start_date")
    return Period(start=start, end=end)


class VendorSalesService(BaseService):
    def _require_admin(self, actor: ActorContext):
        if not actor.is_admin:
            raise OrderAuthorizationError("Admin access required")

    def _get_vendor(self, vendor_id) -> Vendor:
        try:
            return Vendor.objects.get(pk=vendor_id)
        except (Vendor.DoesNotExist, ValueError, TypeError):
            raise VendorNotFoundError(f"Vendor {vendor_id} not found")

    def _settled_items(self, vendor: Vendor, period: Period, delivered_only: bool):
        orders = Order.objects.filter(
            created_at__gte=period.start,
            created_at__lte=period.end,
            payment_status="completed",
        )
        if delivered_only:
            orders = orders.filter(status="delivered")
        return OrderItem.objects.filter(vendor=vendor, order__in=orders).select_related("order")

    @BaseService.log_performance
    def sales_report(self, actor: ActorContext, vendor_id, start_date=None, end_date=None) -> ServiceResult[Dict]:
        """
        Sales of one vendor's line items over paid and delivered orders.

        Only the vendor's own items count towards the totals; other vendors'
        items on the same order are ignored.
        """
        try:
            self._require_admin(actor)
            period = resolve_period(start_date, end_date)
            vendor = self._get_vendor(vendor_id)

            total_sales = Decimal("0")
            sales_by_product = {}
            orders = {}
            for item in self._settled_items(vendor, period, delivered_only=True):
                total_sales += item.total_price
                entry = sales_by_product.setdefault(item.product_name, {"quantity": 0, "sales": Decimal("0")})
                entry["quantity"] += item.quantity
                entry["sales"] += item.total_price
                orders[item.order_id] = item.order

            total_orders = len(orders)
            average = (total_sales / total_orders) if total_orders else Decimal("0")

            report = {
                "vendor": {
                    "id": vendor.pk,
                    "business_name": vendor.business_name,
                    "business_email": vendor.business_email,
                },
                "period": {"start": period.start, "end": period.end},
                "summary": {
                    "total_sales": total_sales.quantize(CENTS, rounding=ROUND_HALF_UP),
                    "total_orders": total_orders,
                    "average_order_value": average.quantize(CENTS, rounding=ROUND_HALF_UP),
                },
                "sales_by_product": sales_by_product,
                "orders": [
                    {
                        "id": order.id,
                        "order_number": order.order_number,
                        "grand_total": order.grand_total,
                        "status": order.status,
                        "payment_status": order.payment_status,
                        "created_at": order.created_at,
                    }
                    for order in sorted(orders.values(), key=lambda o: o.created_at, reverse=True)
                ],
            }
            return service_ok(report)

        except OrderError as e:
            return service_err(e.code, e.detail)
        except Exception as e:
            self.logger.error(f"Error building sales report for vendor {vendor_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def generate_vendor_payment(
        self, actor: ActorContext, vendor_id, start_date, end_date, notes: str = ""
    ) -> ServiceResult[Dict]:
        """
        Create a pending payout for a vendor's paid sales in the period.

        Amount is ``VENDOR_PAYOUT_RATE`` times the vendor's line-item sales.
        """
        try:
            self._require_admin(actor)
            period = resolve_period(start_date, end_date, require=True)
            vendor = self._get_vendor(vendor_id)

            total_sales = sum(
                (item.total_price for item in self._settled_items(vendor, period, delivered_only=False)),
                Decimal("0"),
            )
            rate = Decimal(str(getattr(settings, "VENDOR_PAYOUT_RATE", "0.80")))
            amount = (total_sales * rate).quantize(CENTS, rounding=ROUND_HALF_UP)

            payment = VendorPayment.objects.create(
                vendor=vendor,
                amount=amount,
                period_start=period.start,
                period_end=period.end,
                status="pending",
                notes=notes or "",
            )
            self.logger.info(f"Generated payment {payment.id} for vendor {vendor.pk}: {amount} on sales {total_sales}")
            return service_ok({"payment": payment, "total_sales": total_sales, "payment_amount": amount})

        except OrderError as e:
            return service_err(e.code, e.detail)
        except Exception as e:
            self.logger.error(f"Error generating payment for vendor {vendor_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def process_vendor_payment(
        self, actor: ActorContext, payment_id, transaction_id: str = ""
    ) -> ServiceResult[VendorPayment]:
        """Mark a payout completed and stamp the vendor's last payment date."""
        try:
            self._require_admin(actor)
            with transaction.atomic():
                try:
                    payment = VendorPayment.objects.select_for_update().select_related("vendor").get(pk=payment_id)
                except (VendorPayment.DoesNotExist, DjangoValidationError, ValueError, TypeError):
                    raise VendorPaymentNotFoundError(f"Vendor payment {payment_id} not found")

                if payment.status != "pending":
                    raise OrderConflictError(f"Vendor payment {payment_id} is already {payment.status}")

                now = timezone.now()
                payment.status = "completed"
                payment.payment_date = now
                if transaction_id:
                    payment.transaction_id = transaction_id
                payment.save()

                Vendor.objects.filter(pk=payment.vendor_id).update(last_payment_date=now)
                payment.vendor.last_payment_date = now

            return service_ok(payment)

        except OrderError as e:
            return service_err(e.code, e.detail)
        except Exception as e:
            self.logger.error(f"Error processing vendor payment {payment_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def list_vendor_payments(self, actor: ActorContext, vendor_id=None, status: Optional[str] = None) -> ServiceResult:
        try:
            self._require_admin(actor)
            payments = VendorPayment.objects.select_related("vendor").order_by("-created_at")
            if vendor_id not in (None, ""):
                payments = payments.filter(vendor_id=vendor_id)
            if status:
                if status not in dict(VendorPayment.STATUS_CHOICES):
                    raise OrderValidationError(f"Unknown payment status: {status}", field="status")
                payments = payments.filter(status=status)
            return service_ok(list(payments))

        except OrderError as e:
            return service_err(e.code, e.detail)
        except ValueError:
            return service_err(OrderValidationError.code, f"Invalid vendor ID: {vendor_id}")
        except Exception as e:
            self.logger.error(f"Error listing vendor payments: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
