"""
InventoryService - Stock Ledger

The only writer of ``VendorOffer.stock`` during checkout, confirmation and
cancellation. Every change is a single ``UPDATE ... SET stock = stock +/- n``;
the non-negative column constraint turns an overdraw into
InsufficientStockError.

Both methods must run inside the caller's transaction so a failure on a later
line item rolls back the earlier ones.
"""

from typing import Iterable, List

from django.db import DataError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from marketplace.catalog.domain.models import VendorOffer
from marketplace.infra.observability.metrics import stock_movements_total, stock_reservation_failures
from marketplace.ordering.domain.exceptions import InsufficientStockError, OfferUnavailableError, OrderValidationError
from marketplace.services.base import BaseService


class InventoryService(BaseService):
    """
    Atomic reserve/release primitives over vendor offer stock.
    """

    def reserve(self, offer_id, quantity: int) -> None:
        """
        Decrement an offer's stock by ``quantity``.

        Raises:
            InsufficientStockError: the decrement would drive stock below zero
            OfferUnavailableError: the offer row no longer exists
        """
        if quantity <= 0:
            raise OrderValidationError("Quantity must be positive", field="quantity")

        try:
            # Savepoint: a failed CHECK must not poison the enclosing transaction
            with transaction.atomic():
                updated = VendorOffer.objects.filter(pk=offer_id).update(
                    stock=F("stock") - quantity, updated_at=timezone.now()
                )
        except (IntegrityError, DataError):
            stock_reservation_failures.inc()
            offer = VendorOffer.objects.select_related("product").filter(pk=offer_id).first()
            if offer is None:
                raise OfferUnavailableError(offer_id)
            self.logger.warning(
                f"Stock reservation rejected: offer={offer_id}, requested={quantity}, available={offer.stock}"
            )
            raise InsufficientStockError(offer_id, offer.product.name, offer.stock)

        if updated == 0:
            stock_reservation_failures.inc()
            raise OfferUnavailableError(offer_id)

        stock_movements_total.labels(direction="reserve").inc(quantity)
        self.logger.info(f"Stock reserved: offer={offer_id}, quantity={quantity}")

    def release(self, offer_id, quantity: int) -> None:
        """Increment an offer's stock by ``quantity``."""
        if quantity <= 0:
            raise OrderValidationError("Quantity must be positive", field="quantity")

        updated = VendorOffer.objects.filter(pk=offer_id).update(stock=F("stock") + quantity, updated_at=timezone.now())
        if updated == 0:
            raise OfferUnavailableError(offer_id)

        stock_movements_total.labels(direction="release").inc(quantity)
        self.logger.info(f"Stock released: offer={offer_id}, quantity={quantity}")

    def reserve_items(self, items: Iterable) -> List:
        """
        Reserve stock for every order line item not yet reserved and flag it.

        Items are processed in offer-id order so concurrent orders lock rows in
        the same sequence. Returns the items reserved by this call.
        """
        reserved = []
        now = timezone.now()
        for item in sorted(items, key=lambda i: str(i.offer_id)):
            if item.stock_reserved:
                continue
            self.reserve(item.offer_id, item.quantity)
            item.stock_reserved = True
            item.reserved_at = now
            item.save(update_fields=["stock_reserved", "reserved_at"])
            reserved.append(item)
        return reserved

    def release_items(self, items: Iterable) -> List:
        """Release stock for every reserved line item and clear its flag."""
        released = []
        for item in sorted(items, key=lambda i: str(i.offer_id)):
            if not item.stock_reserved:
                continue
            self.release(item.offer_id, item.quantity)
            item.stock_reserved = False
            item.reserved_at = None
            item.save(update_fields=["stock_reserved", "reserved_at"])
            released.append(item)
        return released
