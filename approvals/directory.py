"""
Role directory: who currently holds which institutional role.

The workflow trusts callers to be authenticated already; this module only
answers "who holds role X" and builds the acting identity from a user.
"""
import logging
from dataclasses import dataclass

from django.contrib.auth.models import User

from .models import UserRole
from .roles import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    user_id: int
    name: str
    role: str
    department: str = ''


def display_name(user):
    return (user.get_full_name() or user.username).strip()


class RoleDirectory:
    """Lookup over the UserRole table"""

    def active_roles(self, user):
        """Gets all active roles for the user, primary role first"""
        return list(
            UserRole.objects.filter(user=user, is_active=True).values_list('role', flat=True)
        )

    def has_role(self, user, role):
        return UserRole.objects.filter(user=user, role=role, is_active=True).exists()

    def holder_of(self, role):
        """
        Returns the user currently occupying the role, or None.
        When several users hold it the primary, oldest assignment wins.
        """
        user_role = (
            UserRole.objects.filter(role=role, is_active=True, user__is_active=True)
            .select_related('user')
            .first()
        )
        if not user_role:
            logger.warning(f"No active holder for role {role}")
            return None
        return user_role.user

    def get_user(self, user_id):
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            return None

    def actor_for(self, user, role=None):
        """
        Build the acting identity for a user.
        If role is given the user must hold it, otherwise the primary role is used.
        """
        user_roles = UserRole.objects.filter(user=user, is_active=True)
        if role:
            user_roles = user_roles.filter(role=role)
        user_role = user_roles.first()
        if not user_role:
            return None
        return Actor(
            user_id=user.pk,
            name=display_name(user),
            role=Role(user_role.role),
            department=user_role.department,
        )
