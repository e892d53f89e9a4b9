"""
Base classes and utilities for the service layer.

This module provides the ServiceResult pattern (inspired by Rust's Result type)
and the BaseService class every marketplace service derives from.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    A result type that encapsulates success or failure from service operations.

    Expected failures (validation, not found, conflicts) travel as values so
    views can map them to HTTP responses without try/except.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code (present if ok=False)
        error_detail: Human-readable message naming the field or resource at fault

    Examples:
        >>> result = service_ok(order)
        >>> if result.ok:
        ...     return Response(OrderSerializer(result.value).data, 201)

        >>> result = service_err("insufficient_stock", "Insufficient stock for SKU-1. Available: 5")
        >>> print(result.error)  # "insufficient_stock"
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def service_ok(value: T) -> ServiceResult[T]:
    """
    Create a successful ServiceResult.

    Example:
        >>> return service_ok(order)
    """
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (e.g., "order_not_found", "insufficient_stock")
        error_detail: Human-readable error message

    Example:
        >>> return service_err("order_not_found", f"Order {order_id} does not exist")
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator

    Usage:
        class OrderService(BaseService):
            def __init__(self, payment_provider):
                super().__init__()
                self.payment_provider = payment_provider

            @BaseService.log_performance
            def create_order(self, actor, data):
                self.logger.info(f"Creating order for {actor}")
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """Time a service call and log its outcome; exceptions are logged and re-raised."""

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            operation = f"{type(self).__name__}.{func.__name__}"
            started = time.perf_counter()
            try:
                result = func(self, *args, **kwargs)
            except Exception as e:
                self.logger.error(f"{operation} raised after {_elapsed_ms(started):.1f}ms: {e}", exc_info=True)
                raise

            if isinstance(result, ServiceResult) and not result.ok:
                self.logger.warning(
                    f"{operation} failed in {_elapsed_ms(started):.1f}ms: {result.error} ({result.error_detail})"
                )
            else:
                self.logger.info(f"{operation} completed in {_elapsed_ms(started):.1f}ms")
            return result

        return wrapper


# Common error codes for marketplace services
class ErrorCodes:
    """Standard error codes used across marketplace services."""

    # Validation errors
    VALIDATION_ERROR = "validation_error"
    INVALID_SIGNATURE = "invalid_signature"

    # Permission errors
    PERMISSION_DENIED = "permission_denied"

    # Not found errors
    ORDER_NOT_FOUND = "order_not_found"
    OFFER_NOT_AVAILABLE = "offer_not_available"
    VENDOR_NOT_FOUND = "vendor_not_found"
    PAYMENT_NOT_FOUND = "payment_not_found"

    # Conflict errors
    INSUFFICIENT_STOCK = "insufficient_stock"
    DUPLICATE_ITEM = "duplicate_item"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    ORDER_CANNOT_CANCEL = "order_cannot_cancel"
    PAYMENT_CONFLICT = "payment_conflict"
    CONFLICT = "conflict"

    # Infrastructure errors
    TRANSIENT_STORAGE_ERROR = "transient_storage_error"
    GATEWAY_ERROR = "gateway_error"
    INTERNAL_ERROR = "internal_error"
