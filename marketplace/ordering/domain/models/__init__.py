from .order import Order, OrderItem
from .vendor_payment import VendorPayment


__all__ = [
    "Order",
    "OrderItem",
    "VendorPayment",
]
