"""Development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True
ENABLE_DJANGO_ADMIN = True

# Email
EMAIL_BACKEND = env(  # noqa: F405
    "EMAIL_BACKEND",
    default="django.core.mail.backends.console.EmailBackend",
)

# Browsable API
if "rest_framework.renderers.BrowsableAPIRenderer" not in REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"]:  # noqa: F405
    REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"].append("rest_framework.renderers.BrowsableAPIRenderer")  # noqa: F405

# Logging
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
