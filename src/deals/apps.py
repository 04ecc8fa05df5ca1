"""App config for the retail deals module."""
from django.apps import AppConfig


class DealsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "deals"
    verbose_name = "Offres groupees"

    def ready(self):
        import deals.signals  # noqa: F401
