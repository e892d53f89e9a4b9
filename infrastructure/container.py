"""
Dependency Injection Container
================================

Service locator for the order engine. Views never construct services
directly; they ask the container, which wires each service to the
configured payment provider, event bus and stock ledger.

Usage:
    from infrastructure.container import container

    result = container.order_service().create_order(actor, items, address, "cod")
    payment = container.payment()
"""

import logging
from typing import Optional

from .events import EventBus, get_event_bus
from .payments import PaymentFactory, PaymentProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for infrastructure dependencies and order-engine services.

    Lazily creates and caches instances. Singleton.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._clear()
            self._initialized = True
            logger.info("Service container initialized")

    def _clear(self):
        self._payment: Optional[PaymentProviderInterface] = None
        self._event_bus: Optional[EventBus] = None
        self._retry_policy = None

        # Domain Services
        self._inventory_service = None
        self._cart_service = None
        self._order_service = None
        self._payment_confirmation_service = None
        self._order_status_service = None
        self._vendor_sales_service = None

    def payment(self, backend: Optional[str] = None) -> PaymentProviderInterface:
        """
        Get payment provider instance.

        Args:
            backend: Payment backend type ('stripe' or 'dummy').
                    If None, uses PAYMENT_PROVIDER from settings

        Returns:
            PaymentProviderInterface implementation (cached)
        """
        if self._payment is None or backend is not None:
            self._payment = PaymentFactory.create(backend)
            logger.debug(f"Created payment service: {type(self._payment).__name__}")

        return self._payment

    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            self._event_bus = get_event_bus()
        return self._event_bus

    def retry_policy(self):
        """Conflict retry policy shared by the transactional services."""
        if self._retry_policy is None:
            from utils.transaction_utils import RetryPolicy

            self._retry_policy = RetryPolicy.from_settings()
        return self._retry_policy

    def inventory_service(self):
        """Get InventoryService instance."""
        if self._inventory_service is None:
            from marketplace.catalog.domain.services import InventoryService

            self._inventory_service = InventoryService()
            logger.debug("Created InventoryService")
        return self._inventory_service

    def cart_service(self):
        """Get CartService instance."""
        if self._cart_service is None:
            from marketplace.cart.domain.services import CartService

            self._cart_service = CartService()
            logger.debug("Created CartService")
        return self._cart_service

    def order_service(self):
        """Get OrderService instance."""
        if self._order_service is None:
            from marketplace.ordering.domain.services import OrderService

            self._order_service = OrderService(
                payment_provider=self.payment(),
                inventory_service=self.inventory_service(),
                event_bus=self.event_bus(),
                retry_policy=self.retry_policy(),
            )
            logger.debug("Created OrderService")
        return self._order_service

    def payment_confirmation_service(self):
        """Get PaymentConfirmationService instance."""
        if self._payment_confirmation_service is None:
            from marketplace.ordering.domain.services import PaymentConfirmationService

            self._payment_confirmation_service = PaymentConfirmationService(
                payment_provider=self.payment(),
                inventory_service=self.inventory_service(),
                event_bus=self.event_bus(),
                retry_policy=self.retry_policy(),
            )
            logger.debug("Created PaymentConfirmationService")
        return self._payment_confirmation_service

    def order_status_service(self):
        """Get OrderStatusService instance."""
        if self._order_status_service is None:
            from marketplace.ordering.domain.services import OrderStatusService

            self._order_status_service = OrderStatusService(
                inventory_service=self.inventory_service(),
                event_bus=self.event_bus(),
                retry_policy=self.retry_policy(),
            )
            logger.debug("Created OrderStatusService")
        return self._order_status_service

    def vendor_sales_service(self):
        if self._vendor_sales_service is None:
            from marketplace.ordering.domain.services import VendorSalesService

            self._vendor_sales_service = VendorSalesService()
        return self._vendor_sales_service

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._clear()
        logger.info("Service container reset")

    def configure_for_testing(self, payment_provider: PaymentProviderInterface = None, event_bus: EventBus = None):
        """
        Configure container with test doubles.

        Sets up:
            - Dummy payment provider (unless one is given)
            - In-memory event bus (unless one is given)
            - Retry policy that never sleeps
        """
        from infrastructure.events import InMemoryEventBus
        from utils.transaction_utils import RetryPolicy

        self.reset()
        self._payment = payment_provider or PaymentFactory.create("dummy")
        self._event_bus = event_bus or InMemoryEventBus()
        self._retry_policy = RetryPolicy(base_delay=0, sleep=lambda seconds: None)
        logger.info("Service container configured for testing")
        return self


# Global singleton instance
container = ServiceContainer()


# Convenience functions for quick access
def get_payment_provider() -> PaymentProviderInterface:
    """Get payment provider from global container."""
    return container.payment()
