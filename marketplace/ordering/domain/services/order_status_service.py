"""
OrderStatusService - Fulfillment State Machine

pending -> confirmed -> processing -> shipped -> delivered, with cancelled
reachable from any non-terminal state.

Three entry points, one per actor role:
- buyers may only cancel their own orders
- vendors advance one adjacent step at a time, only on orders holding
  their items
- admins may set any status, but never leave a terminal one
"""

from dataclasses import dataclass, field
from typing import List

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from infrastructure.events import get_event_bus
from marketplace.catalog.domain.services import InventoryService
from marketplace.domain.events import OrderCancelledEvent, OrderStatusChangedEvent
from marketplace.infra.observability.metrics import order_status_transitions_total, transaction_retries_total
from marketplace.infra.observability.tracing import add_span_attributes, get_tracer
from marketplace.ordering.domain.exceptions import (
    InvalidStatusTransitionError,
    OrderAuthorizationError,
    OrderCannotBeCancelledError,
    OrderError,
    OrderNotFoundError,
    OrderValidationError,
    TransientStorageError,
)
from marketplace.ordering.domain.models import Order
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.rbac import ActorContext
from utils.transaction_utils import RetryPolicy, run_in_transaction

tracer = get_tracer(__name__)

FULFILLMENT_SEQUENCE = ("pending", "confirmed", "processing", "shipped", "delivered")

# Vendor-facing adjacency: current -> the only legal next status
VENDOR_TRANSITIONS = dict(zip(FULFILLMENT_SEQUENCE, FULFILLMENT_SEQUENCE[1:]))

# Past pending but not yet delivered
ACKNOWLEDGED_STATUSES = FULFILLMENT_SEQUENCE[1:-1]


@dataclass
class StatusChange:
    order: Order
    previous_status: str
    changed: bool = True
    reserved_offer_ids: List[str] = field(default_factory=list)
    released_items: int = 0


class OrderStatusService(BaseService):
    def __init__(self, inventory_service: InventoryService = None, event_bus=None, retry_policy: RetryPolicy = None):
        super().__init__()
        self.inventory_service = inventory_service or InventoryService()
        self.event_bus = event_bus or get_event_bus()
        self.retry_policy = retry_policy

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def cancel_order(self, actor: ActorContext, order_id, reason: str = "") -> ServiceResult[StatusChange]:
        """
        Cancel an order on behalf of its buyer or an admin.

        Reserved stock is released. A completed payment is marked refunded
        (bookkeeping only, no gateway refund is issued).
        """
        return self._run(actor, "cancel_order", lambda: self._cancel_in_transaction(actor, order_id, reason))

    @BaseService.log_performance
    def update_status_as_vendor(self, actor: ActorContext, order_id, new_status: str) -> ServiceResult[StatusChange]:
        """
        Advance an order one step along the fulfillment sequence as a vendor.

        Each step reserves stock for the calling vendor's items that are not
        reserved yet. A vendor whose order another vendor already confirmed may
        still confirm its own items in place. Delivery reserves every remaining
        item.
        """
        if not actor.is_vendor:
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only vendors can update order status here")
        return self._run(actor, "vendor_status_update", lambda: self._vendor_transition(actor, order_id, new_status))

    @BaseService.log_performance
    def update_status_as_admin(
        self, actor: ActorContext, order_id, new_status: str, reason: str = ""
    ) -> ServiceResult[StatusChange]:
        """
        Set any defined status on a non-terminal order.

        Setting ``cancelled`` goes through the cancellation path.
        """
        if not actor.is_admin:
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")
        return self._run(
            actor, "admin_status_update", lambda: self._admin_transition(actor, order_id, new_status, reason)
        )

    def _run(self, actor: ActorContext, operation: str, body) -> ServiceResult[StatusChange]:
        with tracer.start_as_current_span(f"order.{operation}") as span:
            add_span_attributes(span, actor=str(actor))
            try:
                change = run_in_transaction(
                    body,
                    policy=self.retry_policy,
                    operation=operation,
                    on_retry=lambda attempt, exc: transaction_retries_total.labels(operation=operation).inc(),
                )
            except OrderError as e:
                span.record_exception(e)
                return service_err(e.code, e.detail)
            except TransientStorageError as e:
                return service_err(ErrorCodes.TRANSIENT_STORAGE_ERROR, str(e))
            except Exception as e:
                span.record_exception(e)
                self.logger.error(f"Error in {operation}: {e}", exc_info=True)
                return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

            if change.changed:
                self._publish(actor, change)
                order_status_transitions_total.labels(actor_role=actor.role, to_status=change.order.status).inc()
                add_span_attributes(span, order_id=change.order.id, new_status=change.order.status)
            return service_ok(change)

    # ------------------------------------------------------------------
    # Transactional bodies
    # ------------------------------------------------------------------

    def _lock_order(self, order_id) -> Order:
        try:
            return Order.objects.select_for_update().get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise OrderNotFoundError(f"Order {order_id} not found")

    def _cancel_in_transaction(self, actor: ActorContext, order_id, reason: str) -> StatusChange:
        order = self._lock_order(order_id)
        if not actor.is_admin and order.buyer_id != actor.user_id:
            raise OrderAuthorizationError("You do not own this order")
        return self._apply_cancellation(actor, order, reason)

    def _apply_cancellation(self, actor: ActorContext, order: Order, reason: str) -> StatusChange:
        if order.status in Order.TERMINAL_STATUSES:
            raise OrderCannotBeCancelledError(
                f"Order {order.order_number} cannot be cancelled in status '{order.status}'"
            )

        previous_status = order.status
        released = self.inventory_service.release_items(order.items.select_for_update())

        if order.payment_status == "completed":
            order.payment_status = "refunded"

        order.status = "cancelled"
        order.cancellation_reason = reason or ""
        order.cancelled_by = actor.user
        order.cancelled_at = timezone.now()
        order.save(
            update_fields=[
                "status",
                "payment_status",
                "cancellation_reason",
                "cancelled_by",
                "cancelled_at",
                "updated_at",
            ]
        )

        self.logger.info(
            f"Order {order.order_number} cancelled by {actor}: released {len(released)} items, "
            f"payment status {order.payment_status}"
        )
        return StatusChange(order=order, previous_status=previous_status, released_items=len(released))

    def _vendor_transition(self, actor: ActorContext, order_id, new_status: str) -> StatusChange:
        if new_status not in FULFILLMENT_SEQUENCE:
            raise OrderValidationError(
                f"Invalid status '{new_status}'. Vendors may set: {', '.join(FULFILLMENT_SEQUENCE[1:])}",
                field="status",
            )

        order = self._lock_order(order_id)
        vendor_items = list(order.items.select_for_update().filter(vendor=actor.vendor))
        if not vendor_items:
            raise OrderAuthorizationError(f"Order {order_id} does not contain your products")

        if new_status == "confirmed" and order.status in ACKNOWLEDGED_STATUSES:
            # Another vendor already moved the order on; confirm this vendor's own lines in place
            reserved = self.inventory_service.reserve_items(vendor_items)
            if not reserved:
                raise InvalidStatusTransitionError(order.status, new_status)
            self.logger.info(
                f"Order {order.order_number}: vendor {actor.vendor.pk} confirmed {len(reserved)} items "
                f"while order is {order.status}"
            )
            return StatusChange(
                order=order,
                previous_status=order.status,
                changed=False,
                reserved_offer_ids=[str(item.offer_id) for item in reserved],
            )

        if VENDOR_TRANSITIONS.get(order.status) != new_status:
            raise InvalidStatusTransitionError(order.status, new_status)

        previous_status = order.status
        if new_status == "delivered":
            # Nothing leaves the ledger unaccounted once the order is terminal
            reserved = self.inventory_service.reserve_items(order.items.select_for_update())
        else:
            reserved = self.inventory_service.reserve_items(vendor_items)

        self._apply_fulfillment_status(order, new_status)
        return StatusChange(
            order=order,
            previous_status=previous_status,
            reserved_offer_ids=[str(item.offer_id) for item in reserved],
        )

    def _admin_transition(self, actor: ActorContext, order_id, new_status: str, reason: str) -> StatusChange:
        if new_status not in dict(Order.STATUS_CHOICES):
            raise OrderValidationError(f"Invalid status '{new_status}'", field="status")

        order = self._lock_order(order_id)
        if order.status == new_status:
            return StatusChange(order=order, previous_status=order.status, changed=False)
        if order.is_terminal:
            raise InvalidStatusTransitionError(
                order.status, new_status, f"Order is already {order.status} and cannot move to '{new_status}'"
            )

        if new_status == "cancelled":
            return self._apply_cancellation(actor, order, reason)

        previous_status = order.status
        reserved = []
        if previous_status == "pending" or new_status == "delivered":
            # Lines no earlier trigger reserved are reserved now
            reserved = self.inventory_service.reserve_items(order.items.select_for_update())

        self._apply_fulfillment_status(order, new_status)
        return StatusChange(
            order=order,
            previous_status=previous_status,
            reserved_offer_ids=[str(item.offer_id) for item in reserved],
        )

    def _apply_fulfillment_status(self, order: Order, new_status: str) -> None:
        update_fields = ["status", "updated_at"]

        if new_status == "delivered":
            if order.payment_method == "gateway" and order.payment_status != "completed":
                raise InvalidStatusTransitionError(
                    order.status,
                    new_status,
                    f"Order {order.order_number} cannot be delivered while its gateway payment is "
                    f"'{order.payment_status}'",
                )
            now = timezone.now()
            if order.payment_method == "cod" and order.payment_status == "pending":
                order.payment_status = "completed"
                order.paid_at = now
                update_fields += ["payment_status", "paid_at"]
            order.delivered_at = now
            update_fields.append("delivered_at")

        order.status = new_status
        order.save(update_fields=update_fields)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _publish(self, actor: ActorContext, change: StatusChange) -> None:
        order = change.order
        try:
            if order.status == "cancelled":
                event = OrderCancelledEvent(
                    order_id=str(order.id),
                    user_id=str(order.buyer_id),
                    reason=order.cancellation_reason,
                    payment_status=order.payment_status,
                    released_items=change.released_items,
                )
            else:
                event = OrderStatusChangedEvent(
                    order_id=str(order.id),
                    previous_status=change.previous_status,
                    new_status=order.status,
                    actor_role=actor.role,
                    vendor_id=actor.vendor.pk if actor.is_vendor else None,
                    reserved_offer_ids=change.reserved_offer_ids,
                )
            self.event_bus.publish(event.event_type, event.payload)
        except Exception as e:
            self.logger.error(f"Failed to publish status event for order {order.id}: {e}")
