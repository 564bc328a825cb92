"""
Competing decisions on one result, each on its own database connection
"""
import threading
from unittest import mock

from django.db import OperationalError, connection
from django.test import TestCase, TransactionTestCase

from approvals.chain import StepAction, derive_status
from approvals.exceptions import InvalidStateError, WorkflowError
from approvals.models import AuditLog
from approvals.roles import Role
from approvals.workflow_service import ResultWorkflowService
from workflow_fixtures import build_services, create_institution, result_payload


class ConcurrentDecisionTests(TransactionTestCase):

    def setUp(self):
        if connection.vendor == 'sqlite' and connection.is_in_memory_db():
            self.skipTest('Needs a database shared between connections')
        self.users = create_institution()
        self.hod = self.users[Role.HOD]
        workflow, _, _ = build_services()
        self.result = workflow.submit(result_payload(), self.users[Role.COURSE_ADVISER].pk)

    def run_together(self, *decisions):
        start = threading.Barrier(len(decisions))
        outcomes = []

        def worker(decide):
            workflow, _, _ = build_services()
            try:
                start.wait()
                decide(workflow)
                outcomes.append('ok')
            except WorkflowError as exc:
                outcomes.append(type(exc).__name__)
            except Exception as exc:
                outcomes.append(f'{type(exc).__name__}: {exc}')
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(decide,)) for decide in decisions]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return sorted(outcomes)

    def test_same_step_approved_once(self):
        def approve(workflow):
            workflow.approve(self.result.pk, self.hod.pk, 'Michael Chen', 'hod')

        self.assertEqual(self.run_together(approve, approve), ['InvalidStateError', 'ok'])

        steps = self.result.steps()
        self.assertEqual(steps[1].action, StepAction.APPROVED)
        self.assertEqual(steps[2].action, StepAction.PENDING)
        self.assertEqual(AuditLog.objects.filter(result=self.result).count(), 2)

    def test_approve_and_reject_race(self):
        def approve(workflow):
            workflow.approve(self.result.pk, self.hod.pk, 'Michael Chen', 'hod')

        def reject(workflow):
            workflow.reject(self.result.pk, self.hod.pk, 'Michael Chen', 'hod', 'Scores look inflated')

        self.assertEqual(self.run_together(approve, reject), ['InvalidStateError', 'ok'])

        self.result.refresh_from_db()
        self.assertEqual(self.result.status, derive_status([step.action for step in self.result.steps()]))
        self.assertEqual(AuditLog.objects.filter(result=self.result).count(), 2)


class LockedDatabaseTests(TestCase):

    def setUp(self):
        self.users = create_institution()
        self.hod = self.users[Role.HOD]
        self.workflow, _, _ = build_services()
        self.result = self.workflow.submit(result_payload(), self.users[Role.COURSE_ADVISER].pk)

    def test_lock_error_after_step_moved_on(self):
        self.workflow.approve(self.result.pk, self.hod.pk, 'Michael Chen', 'hod')

        with mock.patch.object(
            ResultWorkflowService, '_apply_decision', side_effect=OperationalError('database is locked')
        ):
            with self.assertRaises(InvalidStateError):
                self.workflow.approve(self.result.pk, self.hod.pk, 'Michael Chen', 'hod')

    def test_lock_error_while_step_still_open(self):
        with mock.patch.object(
            ResultWorkflowService, '_apply_decision', side_effect=OperationalError('database is locked')
        ):
            with self.assertRaises(InvalidStateError):
                self.workflow.approve(self.result.pk, self.hod.pk, 'Michael Chen', 'hod')

        self.assertEqual(self.result.steps()[1].action, StepAction.PENDING)

    def test_other_database_errors_propagate(self):
        with mock.patch.object(
            ResultWorkflowService, '_apply_decision', side_effect=OperationalError('no such table: approvals_approvalstep')
        ):
            with self.assertRaises(OperationalError):
                self.workflow.approve(self.result.pk, self.hod.pk, 'Michael Chen', 'hod')
