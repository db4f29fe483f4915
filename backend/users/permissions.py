"""Role checks resolved against the persisted user record, never token claims."""

from rest_framework.permissions import BasePermission

from core.exceptions import PermissionDenied


def is_admin(user) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) == "admin")


def ensure_admin(user) -> None:
    if not is_admin(user):
        raise PermissionDenied()


class IsNotBlocked(BasePermission):
    """
    Refuses blocked accounts on every authenticated endpoint.
    """

    message = "Your account has been blocked."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return True
        return not getattr(user, "is_blocked", False)


class IsAdminRole(BasePermission):
    message = "Access denied. Insufficient permissions."

    def has_permission(self, request, view):
        return is_admin(getattr(request, "user", None))


class IsOwnerRole(BasePermission):
    """
    Owners list vehicles; admins may act on their behalf.
    """

    message = "Access denied. Insufficient permissions."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return False
        return user.role in ("owner", "admin")
