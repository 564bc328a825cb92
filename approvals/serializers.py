from rest_framework import serializers

from .grading import GRADE_CHOICES, MAX_SCORE, MIN_SCORE
from .models import ApprovalStep, AuditLog, Notification, StudentResult


class ApprovalStepSerializer(serializers.ModelSerializer):
    """Serializer for one slot of the approval chain"""
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = ApprovalStep
        fields = ['id', 'position', 'role', 'role_display', 'user', 'user_name', 'action',
                  'comments', 'timestamp', 'transaction_hash']
        read_only_fields = fields


class StudentResultSerializer(serializers.ModelSerializer):
    """Serializer for Results with their approval chain"""
    approval_chain = serializers.SerializerMethodField()
    submitted_by_name = serializers.SerializerMethodField()
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = StudentResult
        fields = ['id', 'student_id', 'student_name', 'course_code', 'course_name', 'score',
                  'grade', 'semester', 'academic_year', 'submitted_by', 'submitted_by_name',
                  'submitted_at', 'status', 'status_display', 'approval_chain',
                  'current_approver', 'comments', 'transaction_hash']
        read_only_fields = fields

    def get_approval_chain(self, obj):
        return ApprovalStepSerializer(obj.steps(), many=True).data

    def get_submitted_by_name(self, obj):
        return obj.submitted_by.get_full_name() or obj.submitted_by.username


class ResultSubmissionSerializer(serializers.Serializer):
    """Input for a course adviser submitting a result"""
    student_id = serializers.CharField(max_length=30)
    student_name = serializers.CharField(max_length=200)
    course_code = serializers.CharField(max_length=20)
    course_name = serializers.CharField(max_length=200)
    score = serializers.IntegerField(min_value=MIN_SCORE, max_value=MAX_SCORE)
    grade = serializers.ChoiceField(choices=GRADE_CHOICES, required=False, allow_blank=True)
    semester = serializers.CharField(max_length=50)
    academic_year = serializers.CharField(max_length=20)
    comments = serializers.CharField(required=False, allow_blank=True)


class DecisionSerializer(serializers.Serializer):
    """Input for approve/reject; rejection comments are checked by the workflow"""
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class AuditLogSerializer(serializers.ModelSerializer):
    """Serializer for ledger entries"""
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'action', 'user', 'user_name', 'role', 'role_display', 'result',
                  'timestamp', 'transaction_hash', 'details', 'level']
        read_only_fields = fields


class NotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = Notification
        fields = ['id', 'notification_type', 'title', 'message', 'is_read', 'result', 'created_at']
        read_only_fields = fields
