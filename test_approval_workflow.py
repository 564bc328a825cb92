"""
Tests for the result approval chain: submission, approvals, rejections and
the guarantees around them.
"""
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings

from approvals.chain import ResultStatus, StepAction, derive_status
from approvals.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from approvals.models import AuditLog, StudentResult
from approvals.roles import Role
from workflow_fixtures import build_services, chain_snapshot, create_institution, create_user, result_payload


class WorkflowTestCase(TestCase):

    def setUp(self):
        self.users = create_institution()
        self.adviser = self.users[Role.COURSE_ADVISER]
        self.hod = self.users[Role.HOD]
        self.dean = self.users[Role.DEAN]
        self.dvc = self.users[Role.DVC_ACADEMIC]
        self.vc = self.users[Role.VICE_CHANCELLOR]
        self.admin = self.users[Role.ADMIN]
        self.workflow, self.visibility, self.ledger = build_services()

    def submit(self, **overrides):
        return self.workflow.submit(result_payload(**overrides), self.adviser.pk)

    def approve(self, result, user, role, comments=None):
        return self.workflow.approve(result.pk, user.pk, user.get_full_name(), role, comments)

    def reject(self, result, user, role, comments):
        return self.workflow.reject(result.pk, user.pk, user.get_full_name(), role, comments)


class SubmissionTests(WorkflowTestCase):

    def test_submission_builds_full_chain(self):
        result = self.submit()

        self.assertEqual(result.grade, 'A')
        self.assertEqual(result.status, ResultStatus.PENDING)
        self.assertEqual(result.current_approver, self.hod)
        self.assertTrue(result.transaction_hash)

        steps = result.steps()
        self.assertEqual(
            [step.role for step in steps],
            ['course_adviser', 'hod', 'dean', 'dvc_academic', 'vice_chancellor'],
        )
        self.assertEqual(
            [step.action for step in steps],
            ['approved', 'pending', 'pending', 'pending', 'pending'],
        )
        self.assertEqual(steps[0].user, self.adviser)
        self.assertEqual(steps[0].user_name, 'Sarah Johnson')
        self.assertIsNotNone(steps[0].timestamp)
        self.assertEqual(steps[0].transaction_hash, result.transaction_hash)
        self.assertEqual([step.user for step in steps[1:]], [self.hod, self.dean, self.dvc, self.vc])
        for step in steps[1:]:
            self.assertIsNone(step.timestamp)
            self.assertEqual(step.transaction_hash, '')

    def test_submission_is_audited(self):
        result = self.submit()

        entries = list(self.ledger.for_result(result))
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].action, 'Result Submitted')
        self.assertEqual(entries[0].user, self.adviser)
        self.assertEqual(entries[0].role, Role.COURSE_ADVISER)
        self.assertEqual(entries[0].transaction_hash, result.transaction_hash)
        self.assertEqual(
            entries[0].details,
            'Submitted result for CS301 - John Smith (85/A)',
        )

    def test_grade_is_derived_from_score(self):
        self.assertEqual(self.submit(score=92).grade, 'A+')
        self.assertEqual(self.submit(score=44).grade, 'F')

    def test_matching_supplied_grade_is_accepted(self):
        result = self.submit(score=72, grade='B')
        self.assertEqual(result.grade, 'B')

    def test_mismatched_grade_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.submit(score=72, grade='A')
        self.assertFalse(StudentResult.objects.exists())

    def test_invalid_scores(self):
        for score in (-1, 101, 85.5, '85', True, None):
            with self.subTest(score=score):
                with self.assertRaises(ValidationError):
                    self.submit(score=score)
        self.assertFalse(StudentResult.objects.exists())
        self.assertFalse(AuditLog.objects.exists())

    def test_missing_fields(self):
        for field in ('student_id', 'student_name', 'course_code', 'course_name', 'semester', 'academic_year'):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError):
                    self.submit(**{field: '  '})
        self.assertFalse(StudentResult.objects.exists())

    def test_only_course_advisers_submit(self):
        for user in (self.hod, self.admin):
            with self.subTest(user=user.username):
                with self.assertRaises(AuthorizationError):
                    self.workflow.submit(result_payload(), user.pk)
        with self.assertRaises(AuthorizationError):
            self.workflow.submit(result_payload(), 999999)
        self.assertFalse(StudentResult.objects.exists())
        self.assertFalse(AuditLog.objects.exists())

    def test_submission_needs_every_role_held(self):
        self.dean.rms_roles.update(is_active=False)

        with self.assertRaises(InvalidStateError):
            self.submit()
        self.assertFalse(StudentResult.objects.exists())


class ApprovalTests(WorkflowTestCase):

    def test_hod_approval_moves_chain_to_dean(self):
        result = self.submit()

        result = self.approve(result, self.hod, 'hod', 'Looks good')

        self.assertEqual(result.status, ResultStatus.APPROVED)
        self.assertEqual(result.current_approver, self.dean)
        hod_step = result.steps()[1]
        self.assertEqual(hod_step.action, StepAction.APPROVED)
        self.assertEqual(hod_step.comments, 'Looks good')
        self.assertIsNotNone(hod_step.timestamp)
        self.assertEqual(hod_step.transaction_hash, result.transaction_hash)

        entry = self.ledger.for_result(result).last()
        self.assertEqual(entry.action, 'Result Approved by HOD')
        self.assertEqual(entry.details, 'Approved result with comments: Looks good')
        self.assertEqual(entry.user_name, 'Michael Chen')

    def test_approval_without_comments(self):
        result = self.submit()
        self.approve(result, self.hod, Role.HOD)

        entry = self.ledger.for_result(result).last()
        self.assertEqual(entry.details, 'Approved result with comments: No comments')

    def test_full_chain_reaches_final_approval(self):
        result = self.submit()
        for user, role in ((self.hod, 'hod'), (self.dean, 'dean'),
                           (self.dvc, 'dvc_academic'), (self.vc, 'vice_chancellor')):
            result = self.approve(result, user, role)

        self.assertEqual(result.status, ResultStatus.FINAL_APPROVED)
        self.assertIsNone(result.current_approver)
        self.assertTrue(all(step.action == StepAction.APPROVED for step in result.steps()))

        self.assertEqual(
            [entry.action for entry in self.ledger.for_result(result)],
            [
                'Result Submitted',
                'Result Approved by HOD',
                'Result Approved by DEAN',
                'Result Approved by DVC ACADEMIC',
                'Result Approved by VICE CHANCELLOR',
            ],
        )

    def test_final_approved_result_is_closed(self):
        result = self.submit()
        for user, role in ((self.hod, 'hod'), (self.dean, 'dean'),
                           (self.dvc, 'dvc_academic'), (self.vc, 'vice_chancellor')):
            result = self.approve(result, user, role)

        with self.assertRaises(InvalidStateError):
            self.approve(result, self.vc, 'vice_chancellor')

    def test_step_cannot_be_approved_twice(self):
        result = self.submit()
        self.approve(result, self.hod, 'hod')

        with self.assertRaises(InvalidStateError):
            self.approve(result, self.hod, 'hod')

    def test_out_of_turn_role_leaves_chain_unchanged(self):
        result = self.submit()
        before = chain_snapshot(result)
        audit_count = AuditLog.objects.count()

        with self.assertRaises(InvalidStateError):
            self.approve(result, self.dean, 'dean')

        result.refresh_from_db()
        self.assertEqual(chain_snapshot(result), before)
        self.assertEqual(result.status, ResultStatus.PENDING)
        self.assertEqual(result.current_approver, self.hod)
        self.assertEqual(AuditLog.objects.count(), audit_count)

    def test_roles_outside_the_chain_cannot_decide(self):
        result = self.submit()

        with self.assertRaises(InvalidStateError):
            self.approve(result, self.admin, 'admin')
        with self.assertRaises(InvalidStateError):
            self.approve(result, self.adviser, 'course_adviser')
        with self.assertRaises(ValidationError):
            self.approve(result, self.hod, 'registrar')

    def test_unknown_result(self):
        with self.assertRaises(NotFoundError):
            self.workflow.approve(424242, self.hod.pk, 'Michael Chen', 'hod')

    def test_unknown_actor(self):
        result = self.submit()

        with self.assertRaises(AuthorizationError):
            self.workflow.approve(result.pk, 999999, 'Nobody', 'hod')
        self.assertEqual(result.steps()[1].action, StepAction.PENDING)

    def test_role_holder_takes_over_the_step(self):
        other_hod = create_user('hod2', 'Grace', 'Okafor', Role.HOD, 'Computer Science')
        result = self.submit()

        result = self.approve(result, other_hod, 'hod')

        hod_step = result.steps()[1]
        self.assertEqual(hod_step.user, other_hod)
        self.assertEqual(hod_step.user_name, 'Grace Okafor')
        self.assertEqual(self.ledger.for_result(result).last().user, other_hod)

    @override_settings(RMS_BIND_APPROVER_TO_USER=True)
    def test_bound_approver_is_enforced(self):
        other_hod = create_user('hod2', 'Grace', 'Okafor', Role.HOD, 'Computer Science')
        result = self.submit()

        with self.assertRaises(AuthorizationError):
            self.approve(result, other_hod, 'hod')
        self.assertEqual(result.steps()[1].action, StepAction.PENDING)

        result = self.approve(result, self.hod, 'hod')
        self.assertEqual(result.status, ResultStatus.APPROVED)


class RejectionTests(WorkflowTestCase):

    def test_dean_rejection_freezes_chain(self):
        result = self.submit()
        self.approve(result, self.hod, 'hod')

        result = self.reject(result, self.dean, 'dean', 'incomplete data')

        self.assertEqual(result.status, ResultStatus.REJECTED)
        self.assertIsNone(result.current_approver)
        self.assertEqual(result.comments, 'incomplete data')
        self.assertEqual(
            [step.action for step in result.steps()],
            ['approved', 'approved', 'rejected', 'pending', 'pending'],
        )

        entry = self.ledger.for_result(result).last()
        self.assertEqual(entry.action, 'Result Rejected by DEAN')
        self.assertEqual(entry.details, 'Rejected result with comments: incomplete data')
        self.assertEqual(entry.level, 'WARNING')

        before = chain_snapshot(result)
        with self.assertRaises(InvalidStateError):
            self.approve(result, self.dvc, 'dvc_academic')
        with self.assertRaises(InvalidStateError):
            self.reject(result, self.dean, 'dean', 'again')
        self.assertEqual(chain_snapshot(result), before)

    def test_rejection_requires_comments(self):
        result = self.submit()

        for comments in ('', '   ', None):
            with self.subTest(comments=comments):
                with self.assertRaises(ValidationError):
                    self.reject(result, self.hod, 'hod', comments)

        result.refresh_from_db()
        self.assertEqual(result.status, ResultStatus.PENDING)
        self.assertEqual(self.ledger.for_result(result).count(), 1)


class ConsistencyTests(WorkflowTestCase):

    def test_status_always_matches_chain(self):
        first = self.submit(student_id='CS2021001')
        second = self.submit(student_id='CS2021002')
        third = self.submit(student_id='CS2021003')

        self.approve(first, self.hod, 'hod')
        self.approve(first, self.dean, 'dean')
        self.approve(second, self.hod, 'hod')
        self.reject(second, self.dean, 'dean', 'Check the continuous assessment')
        self.reject(third, self.hod, 'hod', 'Wrong course code')

        for result in StudentResult.objects.all():
            with self.subTest(result=result.student_id):
                actions = [step.action for step in result.steps()]
                self.assertEqual(result.status, derive_status(actions))

        out = StringIO()
        call_command('check_result_status', '--fail', stdout=out)
        self.assertIn('consistent', out.getvalue())

    def test_transaction_references_increase(self):
        result = self.submit()
        self.approve(result, self.hod, 'hod')
        self.approve(result, self.dean, 'dean')

        references = [entry.transaction_hash for entry in self.ledger.for_result(result)]
        self.assertEqual(len(set(references)), 3)
        self.assertEqual(references, sorted(references))
        self.assertEqual(
            references,
            [step.transaction_hash for step in result.steps()[:3]],
        )
