"""
Request/response serializers for API documentation.

These describe payloads in the OpenAPI schema; input validation itself
happens in the order-engine services so every error names its field.
"""

from rest_framework import serializers


# ===== Common =====


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response format"""

    detail = serializers.CharField(help_text="Human-readable message naming the field or resource at fault")
    code = serializers.CharField(help_text="Stable error code, e.g. insufficient_stock")


# ===== Orders =====


class AddressSerializer(serializers.Serializer):
    """Shipping/billing address"""

    name = serializers.CharField(help_text="Recipient name")
    street = serializers.CharField(help_text="Street address")
    city = serializers.CharField(help_text="City")
    state = serializers.CharField(help_text="State/Province")
    zip_code = serializers.CharField(help_text="Postal/ZIP code")
    country = serializers.CharField(help_text="Country")
    phone = serializers.CharField(help_text="Contact phone number")


class OrderLineRequestSerializer(serializers.Serializer):
    offer_id = serializers.UUIDField(help_text="Vendor offer UUID")
    quantity = serializers.IntegerField(min_value=1, help_text="Quantity to order")


class CreateOrderRequestSerializer(serializers.Serializer):
    """Request to place an order"""

    items = OrderLineRequestSerializer(many=True, help_text="Line items, one entry per vendor offer")
    shipping_address = AddressSerializer(help_text="Delivery address")
    billing_address = AddressSerializer(required=False, help_text="Billing address (defaults to shipping)")
    payment_method = serializers.ChoiceField(choices=["gateway", "cod", "wallet"], help_text="Payment method")
    notes = serializers.CharField(required=False, allow_blank=True, help_text="Notes for the vendors")


class PaymentIntentSerializer(serializers.Serializer):
    intent_id = serializers.CharField(help_text="Gateway order/intent identifier")
    amount = serializers.IntegerField(help_text="Amount in the smallest currency unit")
    currency = serializers.CharField()
    status = serializers.CharField()
    client_secret = serializers.CharField(allow_null=True, help_text="Client secret for the gateway checkout")


class OrderCreatedResponseSerializer(serializers.Serializer):
    order = serializers.DictField(help_text="Created order (see Order schema)")
    payment = PaymentIntentSerializer(allow_null=True, help_text="Gateway intent, for gateway orders only")


class OrderListResponseSerializer(serializers.Serializer):
    """Paginated order list"""

    count = serializers.IntegerField(help_text="Total number of orders")
    page = serializers.IntegerField(help_text="Current page number")
    limit = serializers.IntegerField(help_text="Items per page")
    num_pages = serializers.IntegerField(help_text="Total number of pages")
    results = serializers.ListField(child=serializers.DictField(), help_text="Orders (see Order schema)")


class CancelOrderRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, help_text="Cancellation reason")


class VerifyPaymentRequestSerializer(serializers.Serializer):
    """Gateway callback payload"""

    gateway_order_id = serializers.CharField(help_text="Gateway order identifier stored at checkout")
    gateway_payment_id = serializers.CharField(help_text="Gateway payment identifier")
    signature = serializers.CharField(help_text="HMAC-SHA256 of 'order_id|payment_id'")


class StatusUpdateRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"],
        help_text="Requested order status",
    )
    reason = serializers.CharField(required=False, allow_blank=True, help_text="Reason (admin cancellation only)")


# ===== Vendor sales and payments =====


class SalesSummarySerializer(serializers.Serializer):
    total_sales = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_orders = serializers.IntegerField()
    average_order_value = serializers.DecimalField(max_digits=14, decimal_places=2)


class VendorSalesReportSerializer(serializers.Serializer):
    vendor = serializers.DictField(help_text="Vendor id, business name and email")
    period = serializers.DictField(help_text="Report window start/end")
    summary = SalesSummarySerializer()
    sales_by_product = serializers.DictField(help_text="Quantity and sales keyed by product name")
    orders = serializers.ListField(child=serializers.DictField(), help_text="Contributing orders")


class GenerateVendorPaymentRequestSerializer(serializers.Serializer):
    vendor_id = serializers.IntegerField(help_text="Vendor ID")
    start_date = serializers.CharField(help_text="Period start (ISO 8601)")
    end_date = serializers.CharField(help_text="Period end (ISO 8601)")
    notes = serializers.CharField(required=False, allow_blank=True)


class ProcessVendorPaymentRequestSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(required=False, allow_blank=True, help_text="Bank/transfer reference")
