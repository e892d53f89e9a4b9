from marketplace.cart.domain.models import Cart, CartItem
from marketplace.catalog.domain.models import Product, Vendor, VendorOffer
from marketplace.ordering.domain.models import Order, OrderItem, VendorPayment


__all__ = [
    "Product",
    "Vendor",
    "VendorOffer",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "VendorPayment",
]
