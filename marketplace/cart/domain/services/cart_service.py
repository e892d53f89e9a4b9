"""
CartService - Shopping Cart Collaborator

The order engine only ever clears a buyer's cart once their payment is
confirmed; cart editing lives outside this service.
"""

from django.contrib.auth import get_user_model

from marketplace.cart.domain.models import Cart
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

User = get_user_model()


class CartService(BaseService):
    @BaseService.log_performance
    def clear_cart(self, user: User) -> ServiceResult[int]:
        """
        Clear all items from the user's cart.

        Returns:
            ServiceResult with the number of items removed (0 when no cart exists)
        """
        try:
            cart = Cart.objects.filter(user=user).first()
            if cart is None:
                return service_ok(0)

            items_count, _ = cart.items.all().delete()

            self.logger.info(f"Cleared cart for user {user.pk}: {items_count} items removed")
            return service_ok(items_count)

        except Exception as e:
            self.logger.error(f"Error clearing cart for user {user.pk}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
