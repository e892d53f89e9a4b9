import os

# Mock SECRET_KEY for tests BEFORE importing settings to bypass validation
os.environ.setdefault("SECRET_KEY", "django-insecure-test-key-for-unit-tests-only")

from .settings import *  # noqa: F403

# Override Database to use SQLite for tests
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",  # noqa: F405
    }
}

# Disable external services
PAYMENT_PROVIDER = "dummy"
PAYMENT_SIGNING_SECRET = "test-signing-secret"
STRIPE_SECRET_KEY = "sk_test_mock_key"
EVENT_BUS_BACKEND = "memory"
OTEL_TRACING_ENABLED = False

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# No real waiting between transaction retries
ORDER_CONFIRMATION_RETRY_BASE_DELAY = 0.0

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Enable SessionAuthentication for tests to support client.force_login()
if "DEFAULT_AUTHENTICATION_CLASSES" in REST_FRAMEWORK:  # noqa: F405
    REST_FRAMEWORK["DEFAULT_AUTHENTICATION_CLASSES"].append(  # noqa: F405
        "rest_framework.authentication.SessionAuthentication"
    )
else:
    REST_FRAMEWORK["DEFAULT_AUTHENTICATION_CLASSES"] = [  # noqa: F405
        "rest_framework.authentication.SessionAuthentication"
    ]
