from rest_framework import status
from rest_framework.response import Response

from marketplace.services.base import ErrorCodes, ServiceResult

ERROR_STATUS = {
    ErrorCodes.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_SIGNATURE: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCodes.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.OFFER_NOT_AVAILABLE: status.HTTP_404_NOT_FOUND,
    ErrorCodes.VENDOR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.PAYMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.INSUFFICIENT_STOCK: status.HTTP_409_CONFLICT,
    ErrorCodes.DUPLICATE_ITEM: status.HTTP_409_CONFLICT,
    ErrorCodes.INVALID_STATUS_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCodes.ORDER_CANNOT_CANCEL: status.HTTP_409_CONFLICT,
    ErrorCodes.PAYMENT_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCodes.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCodes.TRANSIENT_STORAGE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCodes.GATEWAY_ERROR: status.HTTP_502_BAD_GATEWAY,
}


def error_response(result: ServiceResult) -> Response:
    """Translate a failed ServiceResult into a ``{"detail", "code"}`` response."""
    http_status = ERROR_STATUS.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({"detail": result.error_detail, "code": result.error}, status=http_status)
