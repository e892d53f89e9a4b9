import uuid

from django.db import models

from marketplace.catalog.domain.models.catalog import Vendor


class VendorPayment(models.Model):
    """Payable amount for one vendor's completed sales over a period."""

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    period_start = models.DateTimeField()
    period_end = models.DateTimeField()
    payment_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    transaction_id = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["vendor", "status"], name="vendorpayment_vendor_idx"),
            models.Index(fields=["period_start", "period_end"], name="vendorpayment_period_idx"),
        ]

    def __str__(self):
        return f"Payment {self.amount} to {self.vendor} ({self.status})"
