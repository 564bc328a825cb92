import logging

from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from .audit_service import AuditLedger, CATEGORY_MARKERS
from .directory import RoleDirectory
from .exceptions import (
    AuthorizationError, InvalidStateError, NotFoundError, ValidationError, WorkflowError,
)
from .models import Notification
from .permissions import HasWorkflowRole, IsCourseAdviser, get_acting_actor
from .serializers import (
    AuditLogSerializer, DecisionSerializer, NotificationSerializer,
    ResultSubmissionSerializer, StudentResultSerializer,
)
from .store import ResultStore
from .visibility_service import ResultVisibilityService
from .workflow_service import ResultWorkflowService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
}

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def build_workflow():
    """Wire the workflow services for one request"""
    store = ResultStore()
    return ResultWorkflowService(store, AuditLedger(), RoleDirectory()), ResultVisibilityService(store)


def error_response(message, http_status, errors=None):
    body = {'status': 'error', 'message': message}
    if errors:
        body['errors'] = errors
    return Response(body, status=http_status)


def workflow_error_response(exc):
    for error_class, http_status in ERROR_STATUS.items():
        if isinstance(exc, error_class):
            return error_response(str(exc), http_status)
    return error_response(str(exc), status.HTTP_400_BAD_REQUEST)


def no_role_response():
    return error_response('You do not hold the requested role.', status.HTTP_403_FORBIDDEN)

# ============================================================================
# RESULT VIEWS
# ============================================================================

@api_view(['GET', 'POST'])
@permission_classes([HasWorkflowRole])
def results_view(request):
    """List visible results (GET) or submit a new one (POST)"""
    if request.method == 'POST':
        return submit_result(request)

    actor = get_acting_actor(request)
    if actor is None:
        return no_role_response()

    # ?status=approved,final_approved keeps several statuses; ?awaiting=true is the approver's queue
    status_param = request.query_params.get('status')
    statuses = [value.strip() for value in status_param.split(',') if value.strip()] if status_param else None

    _, visibility = build_workflow()
    try:
        results = visibility.results_for_role(
            actor.role, actor.user_id,
            status=statuses,
            awaiting=request.query_params.get('awaiting') == 'true',
        )
    except WorkflowError as exc:
        return workflow_error_response(exc)

    return Response({
        'status': 'success',
        'data': StudentResultSerializer(results, many=True).data,
    })


def submit_result(request):
    if not IsCourseAdviser().has_permission(request, None):
        return error_response(IsCourseAdviser.message, status.HTTP_403_FORBIDDEN)

    serializer = ResultSubmissionSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response('Invalid result data', status.HTTP_400_BAD_REQUEST, serializer.errors)

    workflow, _ = build_workflow()
    try:
        result = workflow.submit(serializer.validated_data, request.user.pk)
    except WorkflowError as exc:
        return workflow_error_response(exc)

    return Response({
        'status': 'success',
        'message': 'Result submitted successfully',
        'data': StudentResultSerializer(result).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([HasWorkflowRole])
def result_detail_view(request, result_id):
    actor = get_acting_actor(request)
    if actor is None:
        return no_role_response()

    _, visibility = build_workflow()
    result = visibility.get_visible_result(actor.role, actor.user_id, result_id)
    if result is None:
        return error_response(f'Result {result_id} not found', status.HTTP_404_NOT_FOUND)

    return Response({'status': 'success', 'data': StudentResultSerializer(result).data})


@api_view(['POST'])
@permission_classes([HasWorkflowRole])
def approve_result_view(request, result_id):
    return decide(request, result_id, approve=True)


@api_view(['POST'])
@permission_classes([HasWorkflowRole])
def reject_result_view(request, result_id):
    return decide(request, result_id, approve=False)


def decide(request, result_id, approve):
    actor = get_acting_actor(request)
    if actor is None:
        return no_role_response()

    serializer = DecisionSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response('Invalid decision data', status.HTTP_400_BAD_REQUEST, serializer.errors)
    comments = serializer.validated_data['comments']

    workflow, _ = build_workflow()
    try:
        if approve:
            result = workflow.approve(result_id, actor.user_id, actor.name, actor.role, comments or None)
        else:
            result = workflow.reject(result_id, actor.user_id, actor.name, actor.role, comments)
    except WorkflowError as exc:
        logger.warning(f"Decision on result {result_id} by {request.user.username} refused: {str(exc)}")
        return workflow_error_response(exc)

    return Response({
        'status': 'success',
        'message': 'Result approved successfully' if approve else 'Result rejected successfully',
        'data': StudentResultSerializer(result).data,
    })

# ============================================================================
# DASHBOARD, AUDIT AND NOTIFICATION VIEWS
# ============================================================================

@api_view(['GET'])
@permission_classes([HasWorkflowRole])
def dashboard_stats_view(request):
    actor = get_acting_actor(request)
    if actor is None:
        return no_role_response()

    _, visibility = build_workflow()
    return Response({
        'status': 'success',
        'data': {
            'role': actor.role,
            **visibility.dashboard_stats(actor.role, actor.user_id),
        },
    })


def _filtered_audit_logs(request):
    category = request.query_params.get('category') or None
    if category and category != 'all' and category not in CATEGORY_MARKERS:
        raise ValidationError(f"Unknown audit category: {category}")
    order = request.query_params.get('order', 'newest')
    if order not in ('newest', 'oldest'):
        raise ValidationError(f"Unknown sort order: {order}")
    return AuditLedger().list(
        search=request.query_params.get('search') or None,
        category=category,
        newest_first=(order == 'newest'),
    )


@api_view(['GET'])
@permission_classes([HasWorkflowRole])
def audit_logs_view(request):
    try:
        entries = _filtered_audit_logs(request)
    except WorkflowError as exc:
        return workflow_error_response(exc)

    return Response({
        'status': 'success',
        'count': entries.count(),
        'data': AuditLogSerializer(entries, many=True).data,
    })


@api_view(['GET'])
@permission_classes([HasWorkflowRole])
def export_audit_logs_view(request):
    """Download the (filtered) audit log as CSV or Excel"""
    try:
        entries = list(_filtered_audit_logs(request))
    except WorkflowError as exc:
        return workflow_error_response(exc)

    ledger = AuditLedger()
    file_format = request.query_params.get('file_format', 'csv')
    if file_format == 'csv':
        response = HttpResponse(ledger.export_csv(entries), content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="audit_log.csv"'
    elif file_format == 'xlsx':
        response = HttpResponse(
            ledger.export_excel(entries),
            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        response['Content-Disposition'] = 'attachment; filename="audit_log.xlsx"'
    else:
        return error_response(f'Unsupported export format: {file_format}', status.HTTP_400_BAD_REQUEST)

    logger.info(f"Audit log exported as {file_format} by {request.user.username} ({len(entries)} entries)")
    return response


@api_view(['GET'])
@permission_classes([HasWorkflowRole])
def notifications_view(request):
    notifications = Notification.objects.filter(user=request.user)
    if request.query_params.get('unread') == 'true':
        notifications = notifications.filter(is_read=False)
    return Response({
        'status': 'success',
        'data': NotificationSerializer(notifications, many=True).data,
    })


@api_view(['POST'])
@permission_classes([HasWorkflowRole])
def mark_notification_read_view(request, notification_id):
    notification = Notification.objects.filter(user=request.user, pk=notification_id).first()
    if notification is None:
        return error_response('Notification not found', status.HTTP_404_NOT_FOUND)
    notification.mark_as_read()
    return Response({'status': 'success', 'message': 'Notification marked as read'})
