"""
PaymentConfirmationService - Gateway Payment Callbacks

Verifies a gateway callback signature, then marks the order paid and reserves
its stock in one retried transaction. Replays of the same payment are
no-ops, so a gateway that redelivers the callback never double-decrements.
"""

from dataclasses import dataclass

from django.utils import timezone

from infrastructure.events import get_event_bus
from infrastructure.payments import PaymentProviderInterface
from marketplace.catalog.domain.services import InventoryService
from marketplace.domain.events import OrderPaymentConfirmedEvent
from marketplace.infra.observability.metrics import payment_confirmations_total, transaction_retries_total
from marketplace.infra.observability.tracing import add_span_attributes, get_tracer
from marketplace.ordering.domain.exceptions import (
    OrderAuthorizationError,
    OrderConflictError,
    OrderError,
    OrderNotFoundError,
    OrderValidationError,
    PaymentAlreadyCompletedError,
    PaymentSignatureError,
    TransientStorageError,
)
from marketplace.ordering.domain.models import Order
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.logging_utils import mask_value, sanitize_payload
from utils.rbac import ActorContext
from utils.transaction_utils import RetryPolicy, run_in_transaction

tracer = get_tracer(__name__)


@dataclass
class PaymentConfirmation:
    order: Order
    already_confirmed: bool = False
    reserved_items: int = 0


class PaymentConfirmationService(BaseService):
    def __init__(
        self,
        payment_provider: PaymentProviderInterface = None,
        inventory_service: InventoryService = None,
        event_bus=None,
        retry_policy: RetryPolicy = None,
        clear_cart=None,
    ):
        super().__init__()
        if payment_provider is None:
            from infrastructure.payments import PaymentFactory

            payment_provider = PaymentFactory.create()
        self.payment_provider = payment_provider
        self.inventory_service = inventory_service or InventoryService()
        self.event_bus = event_bus or get_event_bus()
        self.retry_policy = retry_policy
        self.clear_cart = clear_cart

    @BaseService.log_performance
    def confirm_payment(
        self,
        actor: ActorContext,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> ServiceResult[PaymentConfirmation]:
        """
        Confirm a gateway payment for the order created with ``gateway_order_id``.

        Payment status becomes ``completed`` and every unreserved line item is
        reserved against stock. Fulfillment status is left to the vendors.

        Error codes:
            validation_error, invalid_signature, order_not_found,
            permission_denied, payment_conflict, insufficient_stock,
            transient_storage_error, internal_error
        """
        with tracer.start_as_current_span("order.confirm_payment") as span:
            add_span_attributes(span, gateway_order_id=gateway_order_id, user_id=actor.user_id)
            try:
                missing = [
                    name
                    for name, value in (
                        ("gateway_order_id", gateway_order_id),
                        ("gateway_payment_id", gateway_payment_id),
                        ("signature", signature),
                    )
                    if not value
                ]
                if missing:
                    raise OrderValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

                if not self.payment_provider.verify_signature(gateway_order_id, gateway_payment_id, signature):
                    callback = {
                        "gateway_order_id": gateway_order_id,
                        "gateway_payment_id": gateway_payment_id,
                        "gateway_signature": signature,
                    }
                    self.logger.warning(f"Rejected payment callback: {sanitize_payload(callback, callback.keys())}")
                    raise PaymentSignatureError("Invalid payment signature", field="signature")

                confirmation = run_in_transaction(
                    lambda: self._confirm_in_transaction(actor, gateway_order_id, gateway_payment_id, signature),
                    policy=self.retry_policy,
                    operation="confirm_payment",
                    on_retry=lambda attempt, exc: transaction_retries_total.labels(operation="confirm_payment").inc(),
                )

            except OrderError as e:
                payment_confirmations_total.labels(outcome=e.code).inc()
                span.record_exception(e)
                return service_err(e.code, e.detail)
            except TransientStorageError as e:
                payment_confirmations_total.labels(outcome=e.code).inc()
                self.logger.error(f"Payment confirmation for {gateway_order_id} gave up: {e}")
                return service_err(ErrorCodes.TRANSIENT_STORAGE_ERROR, str(e))
            except Exception as e:
                payment_confirmations_total.labels(outcome=ErrorCodes.INTERNAL_ERROR).inc()
                span.record_exception(e)
                self.logger.error(f"Payment confirmation for {gateway_order_id} failed: {e}", exc_info=True)
                return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

            if confirmation.already_confirmed:
                payment_confirmations_total.labels(outcome="replay").inc()
                self.logger.info(
                    f"Payment {mask_value(gateway_payment_id)} for order {confirmation.order.id} already confirmed"
                )
                return service_ok(confirmation)

            self._after_commit(confirmation.order)
            payment_confirmations_total.labels(outcome="confirmed").inc()
            add_span_attributes(span, order_id=confirmation.order.id, reserved_items=confirmation.reserved_items)
            return service_ok(confirmation)

    def _confirm_in_transaction(self, actor, gateway_order_id, gateway_payment_id, signature) -> PaymentConfirmation:
        order = Order.objects.select_for_update().filter(gateway_order_id=gateway_order_id).first()
        if order is None:
            raise OrderNotFoundError(f"Order with gateway order ID {gateway_order_id} not found")

        if not actor.is_admin and order.buyer_id != actor.user_id:
            raise OrderAuthorizationError("You do not own this order")

        if order.payment_status == "completed":
            if order.gateway_payment_id == gateway_payment_id:
                return PaymentConfirmation(order=order, already_confirmed=True)
            raise PaymentAlreadyCompletedError(
                f"Order {order.order_number} was already paid with a different payment ID"
            )

        if order.status == "cancelled" or order.payment_status == "refunded":
            raise OrderConflictError(f"Order {order.order_number} is cancelled and cannot be paid")
        if order.payment_method != "gateway":
            raise OrderConflictError(f"Order {order.order_number} is not paid through the payment gateway")

        order.payment_status = "completed"
        order.gateway_payment_id = gateway_payment_id
        order.gateway_signature = signature
        order.paid_at = timezone.now()
        order.save(update_fields=["payment_status", "gateway_payment_id", "gateway_signature", "paid_at", "updated_at"])

        reserved = self.inventory_service.reserve_items(order.items.select_for_update())
        self.logger.info(f"Payment confirmed for order {order.order_number}: reserved {len(reserved)} items")
        return PaymentConfirmation(order=order, reserved_items=len(reserved))

    def _after_commit(self, order: Order) -> None:
        # Best-effort follow-ups; the payment is already committed
        try:
            if self.clear_cart is not None:
                self.clear_cart(order.buyer_id)
            else:
                from marketplace.cart.tasks import clear_buyer_cart_task

                clear_buyer_cart_task.delay(str(order.buyer_id))
        except Exception as e:
            self.logger.error(f"Failed to schedule cart cleanup for user {order.buyer_id}: {e}")

        try:
            event = OrderPaymentConfirmedEvent(
                order_id=str(order.id),
                user_id=str(order.buyer_id),
                gateway_order_id=order.gateway_order_id,
                grand_total=order.grand_total,
            )
            self.event_bus.publish(event.event_type, event.payload)
        except Exception as e:
            self.logger.error(f"Failed to publish OrderPaymentConfirmedEvent: {e}")
