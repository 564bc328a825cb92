"""
Result Approval Workflow Service
Owns the approval chain of every submitted result.

Workflow: Course Adviser → HOD → Dean → DVC Academic → Vice Chancellor → Final Approved
The course adviser's own slot is approved at submission (self-certification).
A rejection at any stage freezes the chain; resubmission means a new result.
"""
import logging
from collections.abc import Mapping

from django.conf import settings
from django.db import OperationalError, transaction
from django.utils import timezone

from .chain import ResultStatus, StepAction, active_index, derive_status, is_terminal
from .directory import Actor, display_name
from .exceptions import AuthorizationError, InvalidStateError, ValidationError
from .grading import derive_grade, is_valid_score
from .models import ApprovalStep
from .roles import APPROVAL_HIERARCHY, SUBMITTER_ROLE, Role, action_label, is_hierarchy_role
from .signals import emit, result_approved, result_rejected, result_submitted

logger = logging.getLogger(__name__)


class ResultWorkflowService:
    """Service class to handle the result approval chain"""

    REQUIRED_FIELDS = [
        'student_id', 'student_name', 'course_code', 'course_name', 'semester', 'academic_year',
    ]

    def __init__(self, store, ledger, directory):
        self.store = store
        self.ledger = ledger
        self.directory = directory

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def submit(self, payload, submitter_id):
        """
        Submit a new result on behalf of a course adviser

        Args:
            payload: Mapping with student_id, student_name, course_code, course_name,
                score, semester, academic_year and optional grade/comments
            submitter_id: User id of the course adviser

        Returns:
            StudentResult with its chain created
        """
        cleaned = self._clean_submission(payload)

        submitter = self.directory.get_user(submitter_id)
        if submitter is None or not self.directory.has_role(submitter, SUBMITTER_ROLE):
            raise AuthorizationError(f"User {submitter_id} is not a course adviser and cannot submit results")

        # Bind every remaining slot to whoever holds the role right now
        holders = []
        for role in APPROVAL_HIERARCHY[1:]:
            holder = self.directory.holder_of(role)
            if holder is None:
                raise InvalidStateError(f"No active {Role(role).label} to receive the result")
            holders.append((role, holder))

        submitter_name = display_name(submitter)
        now = timezone.now()

        with transaction.atomic():
            reference = self.ledger.next_reference()
            result = self.store.create_result(
                submitted_by=submitter,
                submitted_at=now,
                status=ResultStatus.PENDING,
                transaction_hash=reference,
                **cleaned
            )

            steps = [ApprovalStep(
                position=0,
                role=SUBMITTER_ROLE,
                user=submitter,
                user_name=submitter_name,
                action=StepAction.APPROVED,
                timestamp=now,
                transaction_hash=reference,
            )]
            for position, (role, holder) in enumerate(holders, start=1):
                steps.append(ApprovalStep(
                    position=position,
                    role=role,
                    user=holder,
                    user_name=display_name(holder),
                    action=StepAction.PENDING,
                ))
            self.store.create_steps(result, steps)

            self._refresh_state(result, steps)
            self.store.save_result(result, update_fields=['status', 'current_approver'])

            self.ledger.append(
                action='Result Submitted',
                user=submitter,
                user_name=submitter_name,
                role=SUBMITTER_ROLE,
                result=result,
                timestamp=now,
                reference=reference,
                details=f"Submitted result for {result.course_code} - {result.student_name} "
                        f"({result.score}/{result.grade})",
            )

        logger.info(f"Result {result.id} submitted by {submitter.username} for {result.course_code}")

        self._emit_on_commit(
            result_submitted,
            result=result,
            actor=Actor(submitter.pk, submitter_name, SUBMITTER_ROLE),
        )
        return result

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------
    def approve(self, result_id, actor_id, actor_name, actor_role, comments=None):
        """
        Approve the active step of a result and move the chain forward
        """
        result = self._decide(result_id, actor_id, actor_name, actor_role, comments, StepAction.APPROVED)
        self._emit_on_commit(
            result_approved,
            result=result,
            actor=Actor(actor_id, actor_name, Role(actor_role)),
            comments=comments,
        )
        return result

    def reject(self, result_id, actor_id, actor_name, actor_role, comments):
        """
        Reject the active step of a result. The chain is frozen afterwards.
        """
        if not isinstance(comments, str) or not comments.strip():
            raise ValidationError('A rejection must include comments')

        result = self._decide(result_id, actor_id, actor_name, actor_role, comments.strip(), StepAction.REJECTED)
        self._emit_on_commit(
            result_rejected,
            result=result,
            actor=Actor(actor_id, actor_name, Role(actor_role)),
            comments=comments.strip(),
        )
        return result

    def _decide(self, result_id, actor_id, actor_name, actor_role, comments, decision):
        role = self._coerce_role(actor_role)
        comments = comments or ''

        try:
            result, step = self._apply_decision(result_id, actor_id, actor_name, role, comments, decision)
        except OperationalError as exc:
            # SQLite reports a competing writer as a lock error rather than waiting on the row
            if 'locked' not in str(exc):
                raise
            logger.warning(f"Decision on result {result_id} by {role} collided with another writer: {str(exc)}")
            self._recheck_turn(result_id, role)
            raise InvalidStateError(f"Result {result_id} is being decided by another request")

        logger.info(f"Result {result.id} {decision} by {role} ({step.user_name}); status is now {result.status}")
        return result

    def _apply_decision(self, result_id, actor_id, actor_name, role, comments, decision):
        with transaction.atomic():
            # Row lock: concurrent decisions on one result run one after another
            result = self.store.get_result(result_id, for_update=True)
            steps = self.store.load_chain(result)
            step = self._active_step_for(result, steps, role)
            actor = self._authorize(step, actor_id)

            now = timezone.now()
            reference = self.ledger.next_reference()

            step.action = decision
            step.timestamp = now
            step.comments = comments
            step.transaction_hash = reference
            step.user = actor
            step.user_name = actor_name or display_name(actor)
            self.store.save_step(step)

            self._refresh_state(result, steps)
            result.comments = comments
            result.transaction_hash = reference
            self.store.save_result(
                result, update_fields=['status', 'current_approver', 'comments', 'transaction_hash']
            )

            if decision == StepAction.APPROVED:
                self.ledger.append(
                    action=f"Result Approved by {action_label(role)}",
                    user=actor,
                    user_name=step.user_name,
                    role=role,
                    result=result,
                    timestamp=now,
                    reference=reference,
                    details=f"Approved result with comments: {comments or 'No comments'}",
                )
            else:
                self.ledger.append(
                    action=f"Result Rejected by {action_label(role)}",
                    user=actor,
                    user_name=step.user_name,
                    role=role,
                    result=result,
                    timestamp=now,
                    reference=reference,
                    level='WARNING',
                    details=f"Rejected result with comments: {comments}",
                )

        return result, step

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _clean_submission(self, payload):
        if not isinstance(payload, Mapping):
            raise ValidationError('Result payload must be a mapping of fields')

        cleaned = {}
        missing = []
        for field in self.REQUIRED_FIELDS:
            value = payload.get(field)
            if not isinstance(value, str) or not value.strip():
                missing.append(field)
            else:
                cleaned[field] = value.strip()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        score = payload.get('score')
        if score is None:
            raise ValidationError('Missing required fields: score')
        if not is_valid_score(score):
            raise ValidationError(f"Score must be a whole number between 0 and 100, got {score!r}")
        cleaned['score'] = score

        grade = derive_grade(score)
        supplied_grade = payload.get('grade')
        if supplied_grade and supplied_grade != grade:
            raise ValidationError(f"Grade {supplied_grade} does not match score {score} (expected {grade})")
        cleaned['grade'] = grade

        comments = payload.get('comments') or ''
        if not isinstance(comments, str):
            raise ValidationError('Comments must be text')
        cleaned['comments'] = comments.strip()

        return cleaned

    def _coerce_role(self, actor_role):
        try:
            return Role(actor_role)
        except ValueError:
            raise ValidationError(f"Unknown role: {actor_role}")

    def _active_step_for(self, result, steps, role):
        if is_terminal(result.status):
            raise InvalidStateError(f"Result {result.id} is already {result.get_status_display().lower()}")

        if not is_hierarchy_role(role):
            raise InvalidStateError(f"{role.label} is not part of the approval chain")

        index = active_index([step.action for step in steps])
        if index is None:
            raise InvalidStateError(f"Result {result.id} has no pending approval step")

        step = steps[index]
        if step.role != role:
            raise InvalidStateError(
                f"Result {result.id} is awaiting {Role(step.role).label}, not {role.label}"
            )
        return step

    def _authorize(self, step, actor_id):
        """
        Role match is enough by default; the acting user then takes over the slot.
        RMS_BIND_APPROVER_TO_USER restricts the decision to the user bound at submission.
        """
        actor = self.directory.get_user(actor_id)
        if actor is None:
            raise AuthorizationError(f"Unknown user {actor_id}")

        if getattr(settings, 'RMS_BIND_APPROVER_TO_USER', False) and step.user_id != actor.pk:
            raise AuthorizationError(
                f"This {Role(step.role).label} step is assigned to {step.user_name}"
            )
        return actor

    def _refresh_state(self, result, steps):
        """Recompute status and current approver from the chain"""
        actions = [step.action for step in steps]
        result.status = derive_status(actions)
        index = active_index(actions)
        result.current_approver = steps[index].user if index is not None else None

    def _recheck_turn(self, result_id, role):
        """Raise InvalidStateError when the step this role was deciding has moved on"""
        try:
            result = self.store.get_result(result_id)
            self._active_step_for(result, self.store.load_chain(result), role)
        except OperationalError:
            # Still locked; the caller reports the collision
            return

    def _emit_on_commit(self, signal, **kwargs):
        """Receivers only hear about committed work"""
        transaction.on_commit(lambda: emit(signal, sender=self.__class__, **kwargs))
