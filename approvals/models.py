from django.db import models
from django.contrib.auth.models import User

from .chain import ResultStatus, StepAction
from .exceptions import ImmutableEntryError
from .grading import GRADE_CHOICES
from .roles import Role


# Who holds which role in the institution
class UserRole(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='rms_roles')
    role = models.CharField(max_length=20, choices=Role.choices)
    department = models.CharField(max_length=100, blank=True)
    is_primary = models.BooleanField(default=True)  # Primary role vs additional role
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['user', 'role']
        ordering = ['-is_primary', 'created_at', 'id']

    def __str__(self):
        return f"{self.user.username} - {self.get_role_display()}"


# Main results table
class StudentResult(models.Model):
    student_id = models.CharField(max_length=30)
    student_name = models.CharField(max_length=200)
    course_code = models.CharField(max_length=20)
    course_name = models.CharField(max_length=200)
    score = models.PositiveSmallIntegerField()
    grade = models.CharField(max_length=2, choices=GRADE_CHOICES)
    semester = models.CharField(max_length=50)
    academic_year = models.CharField(max_length=20)

    submitted_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='submitted_results')
    submitted_at = models.DateTimeField()

    status = models.CharField(max_length=20, choices=ResultStatus.choices, default=ResultStatus.PENDING)
    current_approver = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='results_awaiting'
    )
    comments = models.TextField(blank=True)  # Latest actor's remark
    transaction_hash = models.CharField(max_length=40, blank=True)  # Reference of the last mutation

    class Meta:
        ordering = ['-submitted_at', '-id']

    def __str__(self):
        return f"{self.course_code} - {self.student_name} ({self.score}/{self.grade}) [{self.status}]"

    def steps(self):
        """Chain steps in hierarchy order"""
        return sorted(self.approval_chain.all(), key=lambda step: step.position)


# One hierarchy role's decision slot within a result's chain
class ApprovalStep(models.Model):
    result = models.ForeignKey(StudentResult, on_delete=models.CASCADE, related_name='approval_chain')
    position = models.PositiveSmallIntegerField()
    role = models.CharField(max_length=20, choices=Role.choices)
    user = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approval_steps'
    )
    user_name = models.CharField(max_length=200, blank=True)
    action = models.CharField(max_length=10, choices=StepAction.choices, default=StepAction.PENDING)
    comments = models.TextField(blank=True)
    timestamp = models.DateTimeField(null=True, blank=True)
    transaction_hash = models.CharField(max_length=40, blank=True)

    class Meta:
        ordering = ['result', 'position']
        unique_together = [['result', 'position'], ['result', 'role']]

    def __str__(self):
        return f"{self.result_id}#{self.position} {self.role}: {self.action}"


class AuditLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ImmutableEntryError('Audit entries cannot be edited')

    def delete(self):
        raise ImmutableEntryError('Audit entries cannot be deleted')


# Append-only trail of workflow actions
class AuditLog(models.Model):
    LEVEL_CHOICES = [
        ('INFO', 'Information'),
        ('WARNING', 'Warning'),
        ('ERROR', 'Error'),
        ('CRITICAL', 'Critical'),
    ]

    action = models.CharField(max_length=100)  # Label, e.g. 'Result Approved by HOD'
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    user_name = models.CharField(max_length=200)
    role = models.CharField(max_length=20, choices=Role.choices)
    result = models.ForeignKey(
        StudentResult, on_delete=models.PROTECT, null=True, blank=True, related_name='audit_logs'
    )
    timestamp = models.DateTimeField()
    transaction_hash = models.CharField(max_length=40, unique=True)
    details = models.TextField()
    level = models.CharField(max_length=10, choices=LEVEL_CHOICES, default='INFO')

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ['-timestamp', '-id']

    def __str__(self):
        return f"{self.user_name} - {self.action} - {self.timestamp}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ImmutableEntryError('Audit entries cannot be edited')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableEntryError('Audit entries cannot be deleted')


# Monotonic counter behind ledger transaction references
class LedgerSequence(models.Model):
    name = models.CharField(max_length=50, unique=True)
    value = models.PositiveBigIntegerField(default=0)

    def __str__(self):
        return f"{self.name}={self.value}"


# In-app notifications
class Notification(models.Model):
    NOTIFICATION_TYPES = [
        ('RESULT_SUBMITTED', 'Result Submitted'),
        ('RESULT_PENDING', 'Result Pending Approval'),
        ('RESULT_APPROVED', 'Result Approved'),
        ('RESULT_FINAL_APPROVED', 'Result Final Approved'),
        ('RESULT_REJECTED', 'Result Rejected'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    notification_type = models.CharField(max_length=30, choices=NOTIFICATION_TYPES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    result = models.ForeignKey(StudentResult, on_delete=models.CASCADE, null=True, blank=True)

    # Email notification tracking
    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def mark_as_read(self):
        """Mark notification as read"""
        self.is_read = True
        self.save(update_fields=['is_read'])

    def send_email(self):
        """Send email notification to user"""
        from django.core.mail import send_mail
        from django.conf import settings
        from django.utils import timezone

        send_mail(
            subject=f"RMS Notification: {self.title}",
            message=self.message,
            from_email=getattr(settings, 'DEFAULT_FROM_EMAIL', 'noreply@rms.edu'),
            recipient_list=[self.user.email],
            fail_silently=False,
        )
        self.email_sent = True
        self.email_sent_at = timezone.now()
        self.save(update_fields=['email_sent', 'email_sent_at'])
