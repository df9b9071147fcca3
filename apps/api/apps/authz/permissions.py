"""
Role-based permission building blocks.

Apps declare which roles may read and which may write; everything else
(including unauthenticated requests) is denied.
"""
from rest_framework import permissions

from apps.authz.models import RoleChoices


class RoleBasedPermission(permissions.BasePermission):
    """
    Grant access by role name.

    Subclasses set `read_roles` for safe methods and `write_roles` for
    POST/PUT/PATCH/DELETE. Roles in `denied_roles` win over both.
    """
    read_roles = frozenset()
    write_roles = frozenset()
    denied_roles = frozenset({RoleChoices.MARKETING})

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        user_roles = request.user.role_names

        if user_roles & self.denied_roles:
            return False

        if request.method in permissions.SAFE_METHODS:
            return bool(user_roles & (self.read_roles | self.write_roles))

        return bool(user_roles & self.write_roles)

    def has_object_permission(self, request, view, obj):
        return self.has_permission(request, view)

