from django.apps import AppConfig


class ApprovalsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'approvals'
    verbose_name = 'Result Approvals'

    def ready(self):
        # Connect notification receivers to workflow events
        from . import notification_service  # noqa: F401
