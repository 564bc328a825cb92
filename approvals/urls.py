from django.urls import path

from . import views

app_name = 'approvals'

urlpatterns = [
    path('results/', views.results_view, name='results'),
    path('results/<int:result_id>/', views.result_detail_view, name='result-detail'),
    path('results/<int:result_id>/approve/', views.approve_result_view, name='result-approve'),
    path('results/<int:result_id>/reject/', views.reject_result_view, name='result-reject'),
    path('dashboard/stats/', views.dashboard_stats_view, name='dashboard-stats'),
    path('audit-logs/', views.audit_logs_view, name='audit-logs'),
    path('audit-logs/export/', views.export_audit_logs_view, name='audit-logs-export'),
    path('notifications/', views.notifications_view, name='notifications'),
    path('notifications/<int:notification_id>/read/', views.mark_notification_read_view, name='notification-read'),
]
