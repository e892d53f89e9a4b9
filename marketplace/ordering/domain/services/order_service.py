"""
OrderService - Order Creation and Retrieval

Validates a checkout request against vendor offers and their stock, persists
the order with frozen prices in one transaction, then asks the payment
gateway for an intent when the buyer pays through it.
"""

import logging
import random
import time
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Prefetch

from infrastructure.events import get_event_bus
from infrastructure.payments import PaymentException, PaymentIntent, PaymentProviderInterface
from marketplace.catalog.domain.images import normalize_image_reference
from marketplace.catalog.domain.models import VendorOffer
from marketplace.catalog.domain.services import InventoryService
from marketplace.domain.events import OrderPlacedEvent
from marketplace.infra.observability.metrics import order_creation_failures_total, order_value, orders_placed_total
from marketplace.infra.observability.tracing import add_span_attributes, get_tracer
from marketplace.ordering.domain.exceptions import (
    DuplicateItemError,
    ExternalServiceError,
    InsufficientStockError,
    OfferUnavailableError,
    OrderAuthorizationError,
    OrderConflictError,
    OrderError,
    OrderNotFoundError,
    OrderValidationError,
    PaymentAlreadyCompletedError,
    TransientStorageError,
)
from marketplace.ordering.domain.models import Order, OrderItem
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.rbac import ActorContext
from utils.transaction_utils import RetryPolicy, run_in_transaction

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

PAYMENT_METHODS = ("gateway", "cod", "wallet")
ADDRESS_REQUIRED_FIELDS = ("name", "street", "city", "state", "zip_code", "country", "phone")
MAX_PAGE_SIZE = 100
CENTS = Decimal("0.01")


@dataclass
class PlacedOrder:
    """Outcome of a successful checkout."""

    order: Order
    payment_intent: Optional[PaymentIntent] = None


def generate_order_number() -> str:
    """Human-readable order number: ORD-<epoch millis>-<4 random digits>."""
    return f"ORD-{int(time.time() * 1000)}-{random.randint(1000, 9999)}"


def validate_address(address, field: str) -> Dict:
    if not isinstance(address, dict) or not address:
        raise OrderValidationError(f"{field} is required", field=field)
    missing = [name for name in ADDRESS_REQUIRED_FIELDS if not str(address.get(name) or "").strip()]
    if missing:
        raise OrderValidationError(f"{field} is missing required fields: {', '.join(missing)}", field=field)
    return {name: str(address[name]).strip() for name in ADDRESS_REQUIRED_FIELDS}


def parse_line_items(items) -> List[Dict]:
    """Validate the (offer id, quantity) pairs of a checkout request."""
    if not isinstance(items, (list, tuple)) or not items:
        raise OrderValidationError("Order must contain at least one item", field="items")

    parsed = []
    seen = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise OrderValidationError(f"items[{index}] must be an object", field="items")

        raw_offer_id = item.get("offer_id")
        try:
            offer_id = uuid.UUID(str(raw_offer_id))
        except (TypeError, ValueError, AttributeError):
            raise OrderValidationError(f"Invalid vendor offer ID: {raw_offer_id}", field=f"items[{index}].offer_id")

        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise OrderValidationError(
                f"Quantity for vendor offer {offer_id} must be a positive integer", field=f"items[{index}].quantity"
            )

        if offer_id in seen:
            raise DuplicateItemError(offer_id)
        seen.add(offer_id)
        parsed.append({"offer_id": offer_id, "quantity": quantity})
    return parsed


def parse_pagination(page, limit) -> tuple:
    default_limit = getattr(settings, "ORDER_LIST_DEFAULT_PAGE_SIZE", 10)
    try:
        page = int(page) if page not in (None, "") else 1
        limit = int(limit) if limit not in (None, "") else default_limit
    except (TypeError, ValueError):
        raise OrderValidationError("page and limit must be integers", field="page")
    if page < 1 or limit < 1:
        raise OrderValidationError("page and limit must be positive", field="page")
    return page, min(limit, MAX_PAGE_SIZE)


def paginate(queryset, page: int, limit: int) -> Dict:
    total_count = queryset.count()
    offset = (page - 1) * limit
    return {
        "results": list(queryset[offset : offset + limit]),
        "count": total_count,
        "page": page,
        "limit": limit,
        "num_pages": (total_count + limit - 1) // limit,
    }


class OrderService(BaseService):
    """
    Service for creating orders and reading them back with role scoping.
    """

    def __init__(
        self,
        payment_provider: PaymentProviderInterface = None,
        inventory_service: InventoryService = None,
        event_bus=None,
        retry_policy: RetryPolicy = None,
    ):
        """
        Initialize OrderService.

        Args:
            payment_provider: Gateway used for payment intents (injected)
            inventory_service: Stock ledger (injected)
            event_bus: Event bus for publishing domain events (injected)
            retry_policy: Conflict retry policy for the creation transaction
        """
        super().__init__()
        if payment_provider is None:
            from infrastructure.payments import PaymentFactory

            payment_provider = PaymentFactory.create()
        self.payment_provider = payment_provider
        self.inventory_service = inventory_service or InventoryService()
        self.event_bus = event_bus or get_event_bus()
        self.retry_policy = retry_policy

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def create_order(
        self,
        actor: ActorContext,
        items: List[Dict],
        shipping_address: Dict,
        payment_method: str,
        billing_address: Optional[Dict] = None,
        notes: str = "",
    ) -> ServiceResult[PlacedOrder]:
        """
        Create an order for the actor from (offer_id, quantity) pairs.

        Cash-on-delivery orders reserve stock in the same transaction; gateway
        orders get a payment intent once the order is committed.

        Example:
            >>> result = order_service.create_order(
            ...     actor,
            ...     items=[{"offer_id": offer.id, "quantity": 2}],
            ...     shipping_address=address,
            ...     payment_method="cod",
            ... )
            >>> if result.ok:
            ...     order = result.value.order
        """
        with tracer.start_as_current_span("order.create") as span:
            add_span_attributes(span, user_id=actor.user_id, payment_method=payment_method)

            try:
                if payment_method not in PAYMENT_METHODS:
                    raise OrderValidationError(
                        f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}", field="payment_method"
                    )
                shipping = validate_address(shipping_address, "shipping_address")
                billing = validate_address(billing_address, "billing_address") if billing_address else dict(shipping)
                lines = parse_line_items(items)

                with tracer.start_as_current_span("order.create.transaction"):
                    order = run_in_transaction(
                        lambda: self._create_in_transaction(actor, lines, shipping, billing, payment_method, notes),
                        policy=self.retry_policy,
                        operation="create_order",
                    )

            except OrderError as e:
                order_creation_failures_total.labels(reason=e.code).inc()
                span.record_exception(e)
                return service_err(e.code, e.detail)
            except TransientStorageError as e:
                order_creation_failures_total.labels(reason=e.code).inc()
                return service_err(ErrorCodes.TRANSIENT_STORAGE_ERROR, str(e))
            except Exception as e:
                order_creation_failures_total.labels(reason=ErrorCodes.INTERNAL_ERROR).inc()
                span.record_exception(e)
                self.logger.error(f"Error creating order for user {actor.user_id}: {e}", exc_info=True)
                return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

            placed = PlacedOrder(order=order)

            if payment_method == "gateway":
                with tracer.start_as_current_span("order.create.payment_intent"):
                    intent_result = self._attach_payment_intent(order)
                if not intent_result.ok:
                    return intent_result
                placed.payment_intent = intent_result.value

            self._publish_placed(order)

            orders_placed_total.labels(status="success", payment_method=payment_method).inc()
            order_value.observe(float(order.grand_total))
            add_span_attributes(span, order_id=order.id, grand_total=order.grand_total)

            self.logger.info(
                f"Created order {order.order_number} for user {actor.user_id}: "
                f"{len(lines)} items, grand total {order.grand_total} {order.currency}"
            )
            return service_ok(placed)

    def _create_in_transaction(self, actor, lines, shipping, billing, payment_method, notes) -> Order:
        offer_ids = [line["offer_id"] for line in lines]
        offers = {
            offer.id: offer
            for offer in VendorOffer.objects.select_related("product", "vendor").filter(
                pk__in=offer_ids, approval_status="approved", is_active=True
            )
        }

        for line in lines:
            offer = offers.get(line["offer_id"])
            if offer is None:
                raise OfferUnavailableError(line["offer_id"])
            if line["quantity"] > offer.stock:
                raise InsufficientStockError(offer.id, offer.product.name, offer.stock)

        total_amount = Decimal("0")
        shipping_price = Decimal("0")
        for line in lines:
            offer = offers[line["offer_id"]]
            total_amount += offer.price * line["quantity"]
            shipping_price += offer.shipping_price * line["quantity"]

        total_amount = total_amount.quantize(CENTS, rounding=ROUND_HALF_UP)
        shipping_price = shipping_price.quantize(CENTS, rounding=ROUND_HALF_UP)

        order = Order.objects.create(
            order_number=self._unique_order_number(),
            buyer=actor.user,
            status="pending",
            payment_status="pending",
            payment_method=payment_method,
            total_amount=total_amount,
            shipping_price=shipping_price,
            grand_total=total_amount + shipping_price,
            currency=getattr(settings, "PAYMENT_CURRENCY", "INR"),
            shipping_address=shipping,
            billing_address=billing,
            notes=notes or "",
        )

        order_items = []
        for line in lines:
            offer = offers[line["offer_id"]]
            image = normalize_image_reference(offer.product.images)
            order_items.append(
                OrderItem.objects.create(
                    order=order,
                    offer=offer,
                    vendor=offer.vendor,
                    quantity=line["quantity"],
                    unit_price=offer.price,  # Snapshot price
                    unit_shipping_price=offer.shipping_price,
                    total_price=(offer.price * line["quantity"]).quantize(CENTS, rounding=ROUND_HALF_UP),
                    product_name=offer.product.name,
                    product_image=image.to_dict() if image else None,
                )
            )

        # No confirmation step follows for cash on delivery
        if payment_method == "cod":
            self.inventory_service.reserve_items(order_items)

        return order

    def _unique_order_number(self) -> str:
        for _ in range(5):
            number = generate_order_number()
            if not Order.objects.filter(order_number=number).exists():
                return number
        raise OrderConflictError("Could not allocate a unique order number")

    def _request_intent(self, order: Order) -> PaymentIntent:
        try:
            return self.payment_provider.create_intent(
                amount=order.grand_total,
                currency=order.currency,
                reference=order.order_number,
                metadata={"order_id": str(order.id)},
            )
        except PaymentException as e:
            raise ExternalServiceError(
                f"Order {order.order_number} ({order.id}) was created but the payment gateway call failed: {e}"
            ) from e

    def _attach_payment_intent(self, order: Order) -> ServiceResult[PaymentIntent]:
        try:
            intent = self._request_intent(order)
        except ExternalServiceError as e:
            # The order stays pending; the buyer retries payment initiation
            self.logger.error(f"Payment intent creation failed for order {order.order_number}: {e.__cause__}")
            order_creation_failures_total.labels(reason=e.code).inc()
            return service_err(e.code, e.detail)

        Order.objects.filter(pk=order.pk).update(gateway_order_id=intent.intent_id)
        order.gateway_order_id = intent.intent_id
        return service_ok(intent)

    def _publish_placed(self, order: Order) -> None:
        try:
            event = OrderPlacedEvent(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=str(order.buyer_id),
                grand_total=order.grand_total,
                payment_method=order.payment_method,
            )
            self.event_bus.publish(event.event_type, event.payload)
        except Exception as e:
            self.logger.error(f"Failed to publish OrderPlacedEvent: {e}")

    @BaseService.log_performance
    def create_payment_intent(self, actor: ActorContext, order_id) -> ServiceResult[PlacedOrder]:
        """
        (Re)initiate gateway payment for a pending gateway order.

        Returns the stored intent id when one already exists.
        """
        try:
            order = self._get_scoped_order(actor, order_id)

            if order.payment_method != "gateway":
                raise OrderValidationError(
                    f"Order {order.order_number} is not paid through the payment gateway", field="payment_method"
                )
            if order.status == "cancelled" or order.payment_status != "pending":
                raise PaymentAlreadyCompletedError(
                    f"Order {order.order_number} has payment status '{order.payment_status}' "
                    f"and status '{order.status}'"
                )
            if order.gateway_order_id:
                return service_ok(PlacedOrder(order=order))

            intent_result = self._attach_payment_intent(order)
            if not intent_result.ok:
                return intent_result
            return service_ok(PlacedOrder(order=order, payment_intent=intent_result.value))

        except OrderError as e:
            return service_err(e.code, e.detail)
        except Exception as e:
            self.logger.error(f"Error initiating payment for order {order_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def _base_queryset(self, actor: ActorContext):
        queryset = Order.objects.select_related("buyer")
        if actor.is_vendor:
            return (
                queryset.filter(items__vendor=actor.vendor)
                .distinct()
                .prefetch_related(
                    Prefetch("items", queryset=OrderItem.objects.filter(vendor=actor.vendor).select_related("vendor"))
                )
            )
        queryset = queryset.prefetch_related(Prefetch("items", queryset=OrderItem.objects.select_related("vendor")))
        if actor.is_admin:
            return queryset
        return queryset.filter(buyer=actor.user)

    def _get_scoped_order(self, actor: ActorContext, order_id) -> Order:
        try:
            order = Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise OrderNotFoundError(f"Order {order_id} not found")

        if actor.is_admin:
            return order
        if actor.is_vendor:
            if not order.items.filter(vendor=actor.vendor).exists():
                raise OrderAuthorizationError(f"Order {order_id} does not contain your products")
            return order
        if order.buyer_id != actor.user_id:
            raise OrderAuthorizationError("You do not own this order")
        return order

    @BaseService.log_performance
    def get_order(self, actor: ActorContext, order_id) -> ServiceResult[Order]:
        """
        Get order details scoped to the actor.

        Buyers see their own orders, vendors see orders holding their items
        (with only their own line items), admins see everything.
        """
        try:
            self._get_scoped_order(actor, order_id)
            order = self._base_queryset(actor).get(pk=order_id)
            return service_ok(order)
        except OrderError as e:
            return service_err(e.code, e.detail)
        except Exception as e:
            self.logger.error(f"Error getting order {order_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def list_orders(
        self,
        actor: ActorContext,
        page=1,
        limit=None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> ServiceResult[Dict]:
        """
        List orders visible to the actor, newest first.

        Example:
            >>> result = order_service.list_orders(actor, page=1, limit=10, status="pending")
            >>> if result.ok:
            ...     orders = result.value["results"]
        """
        try:
            page, limit = parse_pagination(page, limit)
            queryset = self._base_queryset(actor)

            if status:
                if status not in dict(Order.STATUS_CHOICES):
                    raise OrderValidationError(f"Unknown order status: {status}", field="status")
                queryset = queryset.filter(status=status)
            if payment_status:
                if payment_status not in dict(Order.PAYMENT_STATUS_CHOICES):
                    raise OrderValidationError(f"Unknown payment status: {payment_status}", field="payment_status")
                queryset = queryset.filter(payment_status=payment_status)

            result_data = paginate(queryset.order_by("-created_at"), page, limit)
            self.logger.info(f"Listed orders for {actor}: {result_data['count']} total, page {page}")
            return service_ok(result_data)

        except OrderError as e:
            return service_err(e.code, e.detail)
        except Exception as e:
            self.logger.error(f"Error listing orders for {actor}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
