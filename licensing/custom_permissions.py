from rest_framework import exceptions
from rest_framework.permissions import BasePermission


def user_group_names(user):
    if not user or not user.is_authenticated:
        return set()
    return set(user.groups.values_list('name', flat=True))


class IsOwnerOrAdmin(BasePermission):
    """
    Object access for superusers, any grouped staff member, or the creator
    of the record. Records nobody created are open to every signed-in user.
    """

    def has_object_permission(self, request, view, obj):
        if request.user.is_superuser:
            return True

        user_groups = user_group_names(request.user)
        if user_groups:
            return True

        creator_id = getattr(obj, 'created_by_id', None)
        assigned_group = getattr(obj, 'assigned_group', None)
        return creator_id == request.user.id or assigned_group in user_groups or creator_id is None


class GroupPermission(BasePermission):
    """Grants access to members of ``group_names``; everyone else gets a 403."""
    group_names = ()

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        if request.user.groups.filter(name__in=self.group_names).exists():
            return True

        raise exceptions.PermissionDenied("You do not have permission to access this resource.")


class IsInAnalytics1Group(GroupPermission):
    group_names = ('Analytics1',)


class IsInAnalytics2Group(GroupPermission):
    group_names = ('Analytics2', 'Analytics')


class IsInAnalytics3Group(GroupPermission):
    group_names = ('Analytics3',)


class IsGroupExist(BasePermission):
    """Any user that belongs to at least one group."""

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        if request.user.groups.exists():
            return True

        raise exceptions.PermissionDenied("You do not have permission to access this resource.")


class IsStaffUser(BasePermission):
    """Staff flag, superuser flag, or membership of Super/Admin."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_staff or user.is_superuser:
            return True
        return bool(user_group_names(user) & {'Super', 'Admin'})
