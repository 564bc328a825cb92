"""
Notification Service for RMS
Turns workflow events into in-app notifications (and emails when enabled)
"""
import logging

from django.conf import settings
from django.dispatch import receiver

from .chain import ResultStatus
from .models import Notification
from .roles import Role
from .signals import result_approved, result_rejected, result_submitted

logger = logging.getLogger(__name__)


class NotificationService:
    """Handles notifications and emails"""

    @staticmethod
    def create_new_notification(user, notification_type, title, message, result=None):
        """
        Creates a new notification for user
        """
        new_notification = Notification.objects.create(
            user=user,
            notification_type=notification_type,
            title=title,
            message=message,
            result=result,
        )

        # Send email if enabled and user has email address
        if getattr(settings, 'RMS_NOTIFICATION_EMAILS', False) and user.email:
            try:
                new_notification.send_email()
            except Exception as e:
                logger.error(f"Failed to send email notification to {user.username}: {str(e)}")

        return new_notification

    @staticmethod
    def notify_next_approver(result):
        """
        Notify the user whose turn it is on the result
        """
        if result.current_approver is None:
            return None
        return NotificationService.create_new_notification(
            user=result.current_approver,
            notification_type='RESULT_PENDING',
            title=f'Result Pending Approval - {result.course_code}',
            message=f'A result for {result.student_name} ({result.student_id}) in {result.course_code} '
                    f'is pending your approval.',
            result=result,
        )

    @staticmethod
    def notify_result_approved(result, approver_name, approver_role):
        """
        Notify the submitting course adviser when the result is approved
        """
        if result.status == ResultStatus.FINAL_APPROVED:
            return NotificationService.create_new_notification(
                user=result.submitted_by,
                notification_type='RESULT_FINAL_APPROVED',
                title=f'Result Final Approved - {result.course_code}',
                message=f'Your submitted result for {result.student_name} in {result.course_code} '
                        f'has received final approval from the {Role(approver_role).label}.',
                result=result,
            )
        return NotificationService.create_new_notification(
            user=result.submitted_by,
            notification_type='RESULT_APPROVED',
            title=f'Result Approved - {result.course_code}',
            message=f'Your submitted result for {result.student_name} in {result.course_code} '
                    f'has been approved by {approver_name} ({Role(approver_role).label}).',
            result=result,
        )

    @staticmethod
    def notify_result_rejected(result, rejector_name, rejector_role, comments):
        """
        Notify the submitting course adviser when the result is rejected
        """
        return NotificationService.create_new_notification(
            user=result.submitted_by,
            notification_type='RESULT_REJECTED',
            title=f'Result Rejected - {result.course_code}',
            message=f'Your submitted result for {result.student_name} in {result.course_code} '
                    f'has been rejected by {rejector_name} ({Role(rejector_role).label}).\n\n'
                    f'Comment: {comments}\n\n'
                    f'Please review and submit a corrected result.',
            result=result,
        )


@receiver(result_submitted, dispatch_uid='approvals.notify_on_submit')
def notify_on_submit(sender, result, actor, **kwargs):
    NotificationService.notify_next_approver(result)


@receiver(result_approved, dispatch_uid='approvals.notify_on_approve')
def notify_on_approve(sender, result, actor, **kwargs):
    NotificationService.notify_result_approved(result, actor.name, actor.role)
    NotificationService.notify_next_approver(result)


@receiver(result_rejected, dispatch_uid='approvals.notify_on_reject')
def notify_on_reject(sender, result, actor, comments='', **kwargs):
    NotificationService.notify_result_rejected(result, actor.name, actor.role, comments)
