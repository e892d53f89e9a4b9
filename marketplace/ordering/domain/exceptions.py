from marketplace.services.base import ErrorCodes
from utils.transaction_utils import TransientStorageError


class OrderError(Exception):
    """Base class for order engine exceptions."""

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, detail: str = ""):
        self.detail = detail or self.__class__.__name__
        super().__init__(self.detail)


class OrderValidationError(OrderError):
    """Raised when checkout or transition input is missing or malformed."""

    code = ErrorCodes.VALIDATION_ERROR

    def __init__(self, detail: str = "", field: str = None):
        self.field = field
        super().__init__(detail)


class PaymentSignatureError(OrderValidationError):
    """Raised when a payment callback signature does not match."""

    code = ErrorCodes.INVALID_SIGNATURE


class OrderAuthorizationError(OrderError):
    """Raised when the actor has no rights over the target order."""

    code = ErrorCodes.PERMISSION_DENIED


class OrderNotFoundError(OrderError):
    code = ErrorCodes.ORDER_NOT_FOUND


class OfferUnavailableError(OrderNotFoundError):
    """Raised when a referenced vendor offer is absent, unapproved or inactive."""

    code = ErrorCodes.OFFER_NOT_AVAILABLE

    def __init__(self, offer_id):
        self.offer_id = str(offer_id)
        super().__init__(f"Vendor offer with ID {offer_id} not found or not available")


class VendorNotFoundError(OrderNotFoundError):
    code = ErrorCodes.VENDOR_NOT_FOUND


class VendorPaymentNotFoundError(OrderNotFoundError):
    code = ErrorCodes.PAYMENT_NOT_FOUND


class OrderConflictError(OrderError):
    code = ErrorCodes.CONFLICT


class InsufficientStockError(OrderConflictError):
    code = ErrorCodes.INSUFFICIENT_STOCK

    def __init__(self, offer_id, name: str, available: int):
        self.offer_id = str(offer_id)
        self.available = available
        super().__init__(f"Insufficient stock for {name} (offer {offer_id}). Available: {available}")


class DuplicateItemError(OrderConflictError):
    code = ErrorCodes.DUPLICATE_ITEM

    def __init__(self, offer_id):
        self.offer_id = str(offer_id)
        super().__init__(f"Vendor offer {offer_id} appears more than once in the order")


class InvalidStatusTransitionError(OrderConflictError):
    code = ErrorCodes.INVALID_STATUS_TRANSITION

    def __init__(self, current: str, requested: str, detail: str = ""):
        self.current = current
        self.requested = requested
        super().__init__(detail or f"Cannot change order status from '{current}' to '{requested}'")


class OrderCannotBeCancelledError(OrderConflictError):
    code = ErrorCodes.ORDER_CANNOT_CANCEL


class PaymentAlreadyCompletedError(OrderConflictError):
    """Raised when a different payment tries to settle an already-paid order."""

    code = ErrorCodes.PAYMENT_CONFLICT


class ExternalServiceError(OrderError):
    """Raised when the payment gateway call fails."""

    code = ErrorCodes.GATEWAY_ERROR


__all__ = [
    "OrderError",
    "OrderValidationError",
    "PaymentSignatureError",
    "OrderAuthorizationError",
    "OrderNotFoundError",
    "OfferUnavailableError",
    "VendorNotFoundError",
    "VendorPaymentNotFoundError",
    "OrderConflictError",
    "InsufficientStockError",
    "DuplicateItemError",
    "InvalidStatusTransitionError",
    "OrderCannotBeCancelledError",
    "PaymentAlreadyCompletedError",
    "TransientStorageError",
    "ExternalServiceError",
]
