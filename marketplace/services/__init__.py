"""
Marketplace Service Layer

Shared service-layer primitives. Domain services live beside their models
(``marketplace.<context>.domain.services``) and are wired together by
``infrastructure.container``.

Usage:
    from marketplace.services import BaseService, ErrorCodes, service_ok, service_err

    result = container.order_service().create_order(actor, data)

    if result.ok:
        order = result.value
    else:
        error = result.error
"""

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Helper functions
    "service_ok",
    "service_err",
    # Error codes
    "ErrorCodes",
]
