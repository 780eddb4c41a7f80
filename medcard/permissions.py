"""
Role based access helpers.
"""
from rest_framework.permissions import BasePermission

PRIVILEGED_ROLES = {"provider", "admin"}


def is_privileged(user) -> bool:
    """Providers and admins may act on other patients' records."""
    return getattr(user, "role", None) in PRIVILEGED_ROLES


def is_admin(user) -> bool:
    return getattr(user, "role", None) == "admin"


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    message = "Forbidden"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and is_admin(user))
