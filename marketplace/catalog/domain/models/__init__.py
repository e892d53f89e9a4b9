from .catalog import Product, Vendor, VendorOffer


__all__ = [
    "Product",
    "Vendor",
    "VendorOffer",
]
