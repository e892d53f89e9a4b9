from .order_serializers import OrderItemSerializer, OrderSerializer, VendorPaymentSerializer

__all__ = ["OrderSerializer", "OrderItemSerializer", "VendorPaymentSerializer"]
