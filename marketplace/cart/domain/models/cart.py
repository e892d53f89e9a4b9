from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models.catalog import VendorOffer


User = get_user_model()


class Cart(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="cart")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Shopping Cart"
        verbose_name_plural = "Shopping Carts"
        app_label = "marketplace"

    def __str__(self):
        return f"Cart for {self.user.email}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    offer = models.ForeignKey(VendorOffer, on_delete=models.CASCADE, related_name="cart_items")
    quantity = models.PositiveIntegerField(default=1)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ["cart", "offer"]
        app_label = "marketplace"

    @property
    def total_price(self):
        return self.quantity * self.offer.price

    def __str__(self):
        return f"{self.quantity}x {self.offer.sku} in {self.cart.user.email}'s cart"
