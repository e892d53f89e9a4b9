import logging

from infrastructure.events import get_event_bus


logger = logging.getLogger(__name__)


def handle_order_placed(event_data):
    """Handle order.placed event."""
    payload = event_data.get("payload", {})
    logger.info(
        f"[Marketplace Listener] Order placed: {payload.get('order_number')} "
        f"({payload.get('payment_method')}, {payload.get('grand_total')})"
    )


def handle_order_cancelled(event_data):
    """Handle order.cancelled event."""
    payload = event_data.get("payload", {})
    logger.info(
        f"[Marketplace Listener] Order cancelled: {payload.get('order_id')} "
        f"payment_status={payload.get('payment_status')} released_items={payload.get('released_items')}"
    )


def handle_order_status_changed(event_data):
    """Handle order.status_changed event."""
    payload = event_data.get("payload", {})
    logger.info(
        f"[Marketplace Listener] Order {payload.get('order_id')} moved "
        f"{payload.get('previous_status')} -> {payload.get('new_status')} by {payload.get('actor_role')}"
    )


def register_marketplace_listeners():
    """Register all marketplace event listeners."""
    event_bus = get_event_bus()
    event_bus.subscribe("order.placed", handle_order_placed)
    event_bus.subscribe("order.cancelled", handle_order_cancelled)
    event_bus.subscribe("order.status_changed", handle_order_status_changed)
    logger.info("Marketplace event listeners registered")
