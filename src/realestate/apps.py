"""App config for the real-estate projects module."""
from django.apps import AppConfig


class RealestateConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "realestate"
    verbose_name = "Immobilier"

    def ready(self):
        import realestate.signals  # noqa: F401
