"""
Result store backed by the Django ORM.

The engine and the visibility service receive a store instance; nothing in the
workflow reaches for a module-level collection of results.
"""
from django.db import transaction

from .exceptions import NotFoundError
from .models import ApprovalStep, StudentResult


class ResultStore:

    def _queryset(self):
        return StudentResult.objects.select_related(
            'submitted_by', 'current_approver'
        ).prefetch_related('approval_chain__user')

    def load_results(self, queryset=None):
        """Results with their chains, read inside one transaction"""
        with transaction.atomic():
            return list(queryset if queryset is not None else self._queryset())

    def results(self):
        """Unevaluated queryset for callers that filter further"""
        return self._queryset()

    def get_result(self, result_id, for_update=False):
        """
        Fetch one result. With for_update the row stays locked until the
        surrounding transaction ends, serializing writers of that result.
        """
        queryset = StudentResult.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=result_id)
        except (StudentResult.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Result {result_id} not found")

    def load_chain(self, result):
        return list(ApprovalStep.objects.filter(result=result).order_by('position'))

    def create_result(self, **fields):
        return StudentResult.objects.create(**fields)

    def create_steps(self, result, steps):
        for step in steps:
            step.result = result
        return ApprovalStep.objects.bulk_create(steps)

    def save_result(self, result, update_fields=None):
        result.save(update_fields=update_fields)

    def save_step(self, step, update_fields=None):
        step.save(update_fields=update_fields)
