# Marketplace API Serializers

# Import response serializers for API documentation
from .response_serializers import (
    AddressSerializer,
    CancelOrderRequestSerializer,
    CreateOrderRequestSerializer,
    ErrorResponseSerializer,
    GenerateVendorPaymentRequestSerializer,
    OrderCreatedResponseSerializer,
    OrderLineRequestSerializer,
    OrderListResponseSerializer,
    PaymentIntentSerializer,
    ProcessVendorPaymentRequestSerializer,
    StatusUpdateRequestSerializer,
    VendorSalesReportSerializer,
    VerifyPaymentRequestSerializer,
)


__all__ = [
    "ErrorResponseSerializer",
    "AddressSerializer",
    "OrderLineRequestSerializer",
    "CreateOrderRequestSerializer",
    "PaymentIntentSerializer",
    "OrderCreatedResponseSerializer",
    "OrderListResponseSerializer",
    "CancelOrderRequestSerializer",
    "VerifyPaymentRequestSerializer",
    "StatusUpdateRequestSerializer",
    "VendorSalesReportSerializer",
    "GenerateVendorPaymentRequestSerializer",
    "ProcessVendorPaymentRequestSerializer",
]
