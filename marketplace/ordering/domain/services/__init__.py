from .order_service import OrderService, PlacedOrder
from .order_status_service import OrderStatusService, StatusChange
from .payment_confirmation_service import PaymentConfirmation, PaymentConfirmationService
from .vendor_sales_service import VendorSalesService

__all__ = [
    "OrderService",
    "PlacedOrder",
    "OrderStatusService",
    "StatusChange",
    "PaymentConfirmationService",
    "PaymentConfirmation",
    "VendorSalesService",
]
