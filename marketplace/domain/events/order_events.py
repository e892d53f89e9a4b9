from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from .base import DomainEvent


@dataclass
class OrderPlacedEvent(DomainEvent):
    """Event: Order placed."""

    def __init__(self, order_id: str, order_number: str, user_id: str, grand_total: Decimal, payment_method: str):
        super().__init__(
            event_type="order.placed",
            payload={
                "order_id": order_id,
                "order_number": order_number,
                "user_id": user_id,
                "grand_total": str(grand_total),
                "payment_method": payment_method,
            },
        )


@dataclass
class OrderPaymentConfirmedEvent(DomainEvent):
    """Event: Gateway payment confirmed for an order."""

    def __init__(self, order_id: str, user_id: str, gateway_order_id: str, grand_total: Decimal):
        super().__init__(
            event_type="order.payment_confirmed",
            payload={
                "order_id": order_id,
                "user_id": user_id,
                "gateway_order_id": gateway_order_id,
                "grand_total": str(grand_total),
            },
        )


@dataclass
class OrderCancelledEvent(DomainEvent):
    """Event: Order cancelled."""

    def __init__(self, order_id: str, user_id: str, reason: str, payment_status: str, released_items: int):
        super().__init__(
            event_type="order.cancelled",
            payload={
                "order_id": order_id,
                "user_id": user_id,
                "reason": reason,
                "payment_status": payment_status,
                "released_items": released_items,
            },
        )


@dataclass
class OrderStatusChangedEvent(DomainEvent):
    """Event: Fulfillment status changed by a vendor or an admin."""

    def __init__(
        self,
        order_id: str,
        previous_status: str,
        new_status: str,
        actor_role: str,
        vendor_id: Optional[int] = None,
        reserved_offer_ids: Optional[List[str]] = None,
    ):
        super().__init__(
            event_type="order.status_changed",
            payload={
                "order_id": order_id,
                "previous_status": previous_status,
                "new_status": new_status,
                "actor_role": actor_role,
                "vendor_id": vendor_id,
                "reserved_offer_ids": reserved_offer_ids or [],
            },
        )
