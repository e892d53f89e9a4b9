from rest_framework import serializers

from marketplace.ordering.domain.models import Order, OrderItem, VendorPayment


class OrderBuyerSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    email = serializers.EmailField(read_only=True)
    first_name = serializers.CharField(read_only=True)
    last_name = serializers.CharField(read_only=True)


class OrderItemSerializer(serializers.ModelSerializer):
    offer_id = serializers.UUIDField(read_only=True)
    vendor_id = serializers.IntegerField(read_only=True)
    vendor_name = serializers.CharField(source="vendor.business_name", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "offer_id",
            "vendor_id",
            "vendor_name",
            "quantity",
            "unit_price",
            "unit_shipping_price",
            "total_price",
            "product_name",
            "product_image",
            "stock_reserved",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    Order with its line items.

    The services hand vendors a queryset whose ``items`` prefetch is already
    narrowed to that vendor's lines, so no extra scoping happens here.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    buyer = OrderBuyerSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer",
            "status",
            "payment_status",
            "payment_method",
            "total_amount",
            "shipping_price",
            "grand_total",
            "currency",
            "gateway_order_id",
            "shipping_address",
            "billing_address",
            "notes",
            "items",
            "cancellation_reason",
            "cancelled_at",
            "paid_at",
            "delivered_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class VendorPaymentSerializer(serializers.ModelSerializer):
    vendor_id = serializers.IntegerField(read_only=True)
    vendor_name = serializers.CharField(source="vendor.business_name", read_only=True)
    vendor_email = serializers.EmailField(source="vendor.business_email", read_only=True)

    class Meta:
        model = VendorPayment
        fields = [
            "id",
            "vendor_id",
            "vendor_name",
            "vendor_email",
            "amount",
            "period_start",
            "period_end",
            "payment_date",
            "status",
            "transaction_id",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
