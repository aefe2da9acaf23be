from django.apps import AppConfig


class DutyLogsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "duty_logs"
    verbose_name = "Driver Logbook"
