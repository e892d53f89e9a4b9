import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied

# Canonical role names on the user model
ROLE_USER = "user"
ROLE_VENDOR = "vendor"
ROLE_ADMIN = "admin"

# Actor roles seen by the order engine
ACTOR_BUYER = "buyer"
ACTOR_VENDOR = "vendor"
ACTOR_ADMIN = "admin"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorContext:
    """Request-scoped identity passed explicitly to every order-engine call.

    ``vendor`` is the caller's vendor profile when the actor acts as a vendor.
    """

    user: Any
    role: str
    vendor: Optional[Any] = None

    @property
    def user_id(self):
        return getattr(self.user, "pk", None)

    @property
    def is_admin(self) -> bool:
        return self.role == ACTOR_ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role == ACTOR_VENDOR and self.vendor is not None

    @property
    def is_buyer(self) -> bool:
        return self.role == ACTOR_BUYER

    def __str__(self):
        return f"{self.role}:{self.user_id}"


def is_admin(user) -> bool:
    """Consistent admin check across the codebase."""
    if not getattr(user, "is_authenticated", False):
        return False
    return bool(getattr(user, "is_superuser", False) or getattr(user, "role", None) == ROLE_ADMIN)


def get_vendor_profile(user):
    """Return the user's vendor profile, or None when the user does not sell."""
    if not getattr(user, "is_authenticated", False):
        return None
    try:
        return user.vendor_profile
    except (ObjectDoesNotExist, AttributeError):
        return None


def is_vendor(user) -> bool:
    return getattr(user, "role", None) == ROLE_VENDOR and get_vendor_profile(user) is not None


def build_actor_context(user, as_role: Optional[str] = None) -> ActorContext:
    """
    Build the actor context for an authenticated user.

    ``as_role`` selects the hat the caller is wearing for this request (a vendor
    placing an order acts as a buyer). Without it the strongest role wins.
    Raises PermissionDenied when the user cannot act in the requested role.
    """
    if as_role is None:
        if is_admin(user):
            as_role = ACTOR_ADMIN
        elif is_vendor(user):
            as_role = ACTOR_VENDOR
        else:
            as_role = ACTOR_BUYER

    if as_role == ACTOR_ADMIN:
        if not is_admin(user):
            logger.warning("RBAC denial: user_id=%s is not an admin", getattr(user, "id", None))
            raise PermissionDenied("Admin access required.")
        return ActorContext(user=user, role=ACTOR_ADMIN, vendor=get_vendor_profile(user))
    if as_role == ACTOR_VENDOR:
        vendor = get_vendor_profile(user)
        if vendor is None:
            logger.warning("RBAC denial: user_id=%s has no vendor profile", getattr(user, "id", None))
            raise PermissionDenied("Vendor profile not found for this account.")
        return ActorContext(user=user, role=ACTOR_VENDOR, vendor=vendor)
    if as_role == ACTOR_BUYER:
        if not getattr(user, "is_authenticated", False):
            raise PermissionDenied("Authentication required.")
        return ActorContext(user=user, role=ACTOR_BUYER)
    raise ValueError(f"Unknown actor role: {as_role}")

