"""
Role-scoped read access to results.

Listings ("Pending Approval", "Approved Results", "Rejected Results") and the
dashboard counters are always computed from the same filtered set.
"""
import logging

from django.db.models import Q

from .chain import ResultStatus
from .exceptions import ValidationError
from .roles import Role, SUBMITTER_ROLE, is_hierarchy_role

logger = logging.getLogger(__name__)


class ResultVisibilityService:

    def __init__(self, store):
        self.store = store

    def visible_queryset(self, role, user_id):
        """Filter results based on user role"""
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Unknown role: {role}")

        queryset = self.store.results()

        if role == Role.ADMIN:
            # Admin sees all results
            return queryset

        if role == SUBMITTER_ROLE:
            # Course adviser sees only what they submitted
            return queryset.filter(submitted_by_id=user_id)

        if is_hierarchy_role(role):
            # Approvers see what awaits them plus everything they sit in the chain of
            return queryset.filter(
                Q(current_approver_id=user_id) | Q(approval_chain__user_id=user_id)
            ).distinct()

        return queryset.none()

    def results_for_role(self, role, user_id, status=None, awaiting=False):
        """
        Results the actor may see or act on

        Args:
            role: Acting role
            user_id: Acting user id
            status: Optional status, or list of statuses, to keep
                (pending, approved, rejected, final_approved)
            awaiting: Only results whose current approver is the actor
        """
        queryset = self.visible_queryset(role, user_id)
        if status:
            statuses = [status] if isinstance(status, str) else list(status)
            unknown = [value for value in statuses if value not in ResultStatus.values]
            if unknown:
                raise ValidationError(f"Unknown status: {', '.join(unknown)}")
            queryset = queryset.filter(status__in=statuses)
        if awaiting:
            # Rejected and final approved results have no current approver
            queryset = queryset.filter(current_approver_id=user_id)
        return self.store.load_results(queryset)

    def get_visible_result(self, role, user_id, result_id):
        """One result if the actor may see it, else None"""
        return self.visible_queryset(role, user_id).filter(pk=result_id).first()

    def dashboard_stats(self, role, user_id):
        """Counters derived from the role-filtered result set"""
        results = self.results_for_role(role, user_id)

        stats = {
            'total_results': len(results),
            # Strictly "my turn now"
            'pending_approval': sum(
                1 for result in results
                if result.status == ResultStatus.PENDING and result.current_approver_id == user_id
            ),
            'approved': sum(1 for result in results if result.status == ResultStatus.APPROVED),
            'rejected': sum(1 for result in results if result.status == ResultStatus.REJECTED),
            'final_approved': sum(1 for result in results if result.status == ResultStatus.FINAL_APPROVED),
        }
        logger.debug(f"Dashboard stats for {role}/{user_id}: {stats}")
        return stats
