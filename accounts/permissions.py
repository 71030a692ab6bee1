from rest_framework import exceptions
from rest_framework.permissions import BasePermission

from accounts.rbac import ADMIN_GROUP, SUPER_GROUP
from licensing.custom_permissions import user_group_names


def is_super_actor(user):
    return user.is_superuser or SUPER_GROUP in user_group_names(user)


class IsConsoleAdmin(BasePermission):
    """Members of Super or Admin, or superusers."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser or user_group_names(user) & {SUPER_GROUP, ADMIN_GROUP}:
            return True
        raise exceptions.PermissionDenied("Forbidden")


class IsSuperAdmin(BasePermission):
    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if is_super_actor(user):
            return True
        raise exceptions.PermissionDenied("Forbidden")
