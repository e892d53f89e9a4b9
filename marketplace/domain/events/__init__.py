from .base import DomainEvent
from .order_events import OrderCancelledEvent, OrderPaymentConfirmedEvent, OrderPlacedEvent, OrderStatusChangedEvent


__all__ = [
    "DomainEvent",
    "OrderPlacedEvent",
    "OrderPaymentConfirmedEvent",
    "OrderCancelledEvent",
    "OrderStatusChangedEvent",
]
