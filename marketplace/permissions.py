from rest_framework import permissions

from utils.rbac import is_admin, is_vendor


class IsAdminRole(permissions.BasePermission):
    """
    Allows access only to marketplace administrators.
    """

    message = "Admin access required."
    code = "permission_denied"

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsVendorRole(permissions.BasePermission):
    """
    Allows access only to users with a vendor profile.
    """

    message = "Vendor profile not found for this account."
    code = "permission_denied"

    def has_permission(self, request, view):
        return is_vendor(request.user)
