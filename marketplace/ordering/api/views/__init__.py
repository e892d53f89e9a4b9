from .order_views import AdminOrderViewSet, OrderViewSet, VendorOrderViewSet
from .vendor_payment_views import VendorPaymentViewSet, VendorSalesView

__all__ = [
    "OrderViewSet",
    "VendorOrderViewSet",
    "AdminOrderViewSet",
    "VendorPaymentViewSet",
    "VendorSalesView",
]
