"""
Cart Celery Tasks

Best-effort cart clearing after a buyer's payment is confirmed.
"""

import logging

from celery import shared_task
from django.contrib.auth import get_user_model

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, queue="marketplace_tasks")
def clear_buyer_cart_task(self, user_id):
    """
    Celery task to clear a buyer's cart.

    Returns:
        dict: Clear result
    """
    from infrastructure.container import container

    user = get_user_model().objects.filter(pk=user_id).first()
    if user is None:
        logger.warning(f"Cart clear skipped: user {user_id} no longer exists")
        return {"success": False, "removed": 0, "error": "user_not_found"}

    result = container.cart_service().clear_cart(user)
    if result.ok:
        return {"success": True, "removed": result.value}

    logger.error(f"Cart clear failed for user {user_id}: {result.error_detail}")
    # Retry with exponential backoff
    try:
        raise self.retry(countdown=60 * (2 ** self.request.retries))
    except self.MaxRetriesExceededError:
        return {"success": False, "removed": 0, "error": f"Max retries exceeded: {result.error_detail}"}
