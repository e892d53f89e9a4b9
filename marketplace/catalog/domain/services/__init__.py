from .inventory_service import InventoryService


__all__ = [
    "InventoryService",
]
