"""Test settings - uses SQLite for fast local testing."""
from .base import *  # noqa: F401,F403

DEBUG = True

# Use SQLite for tests (no PostgreSQL dependency)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}
DATABASES["default"]["ATOMIC_REQUESTS"] = False

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Redis cache in tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Disable Celery in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# Disable API throttling in tests for deterministic runs
REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []  # noqa: F405
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}  # noqa: F405

# Pricing constants pinned for deterministic expectations
PLATFORM_COMMISSION_PERCENT = 5
POSITION_PRICE_VARIANCE_PERCENT = 2.5

# Disable logging noise during tests
LOGGING["handlers"].pop("file", None)  # noqa: F405
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
for _name in ("groupbuy", "admission"):
    LOGGING["loggers"][_name]["handlers"] = ["console"]  # noqa: F405
    LOGGING["loggers"][_name]["level"] = "WARNING"  # noqa: F405
