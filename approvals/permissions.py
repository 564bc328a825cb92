from rest_framework import permissions

from .directory import RoleDirectory
from .roles import Role


class BaseRolePermission(permissions.BasePermission):
    """Base permission class for role checking"""
    message = 'You do not hold a role in the results workflow.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return True

    def get_all_user_roles(self, user):
        return RoleDirectory().active_roles(user)


class HasWorkflowRole(BaseRolePermission):
    """Any active role, hierarchy or admin"""

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return bool(self.get_all_user_roles(request.user))


class IsCourseAdviser(BaseRolePermission):
    """Permission for course advisers only"""
    message = 'Only course advisers can submit results.'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return Role.COURSE_ADVISER in self.get_all_user_roles(request.user)


def get_acting_actor(request):
    """
    Identity the request acts as.
    A user holding several roles picks one with ?role= (or 'role' in the body);
    otherwise the primary role is used. Returns None if the role is not held.
    """
    requested_role = request.query_params.get('role')
    if not requested_role and hasattr(request.data, 'get'):
        requested_role = request.data.get('role')
    return RoleDirectory().actor_for(request.user, role=requested_role or None)
