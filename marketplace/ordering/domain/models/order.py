import uuid

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models.catalog import Vendor, VendorOffer

User = get_user_model()


class Order(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("confirmed", "Confirmed"),
        ("processing", "Processing"),
        ("shipped", "Shipped"),
        ("delivered", "Delivered"),
        ("cancelled", "Cancelled"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("refunded", "Refunded"),
    ]

    PAYMENT_METHOD_CHOICES = [
        ("gateway", "Payment Gateway"),
        ("cod", "Cash on Delivery"),
        ("wallet", "Wallet"),
    ]

    TERMINAL_STATUSES = ("delivered", "cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=32, unique=True)
    buyer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="orders")

    # Order Details
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default="pending")
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)

    # Pricing (captured at creation, never recomputed)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    grand_total = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="INR")

    # Gateway references
    gateway_order_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    gateway_payment_id = models.CharField(max_length=255, blank=True)
    gateway_signature = models.CharField(max_length=255, blank=True)

    # Address snapshots
    shipping_address = models.JSONField()
    billing_address = models.JSONField()

    # Notes
    notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)
    cancelled_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="cancelled_orders"
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["buyer", "-created_at"], name="order_buyer_created_idx"),
            models.Index(fields=["status", "payment_status"], name="order_status_payment_idx"),
        ]

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def __str__(self):
        return f"Order {self.order_number} by {self.buyer.email}"


class OrderItem(models.Model):
    """Line item with prices and product details frozen at order time."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    offer = models.ForeignKey(VendorOffer, on_delete=models.PROTECT, related_name="order_items")
    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name="order_items")

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    unit_shipping_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)

    # Product snapshot at time of purchase
    product_name = models.CharField(max_length=200)
    product_image = models.JSONField(null=True, blank=True)

    # Set once the offer's stock has been deducted for this line
    stock_reserved = models.BooleanField(default=False)
    reserved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "marketplace"
        constraints = [
            models.UniqueConstraint(fields=["order", "offer"], name="unique_offer_per_order"),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.product_name} in order {self.order.order_number}"
