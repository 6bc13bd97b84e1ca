# config/settings/test.py
from .base import *  # noqa
from ehr_core.common.logging import configure_structlog

DEBUG = False
SECRET_KEY = "test-secret-key-not-for-production-use-0123456789"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "ehr-test",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
SMS_BACKEND = "ehr_core.notifications.channels.LocmemSmsBackend"

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_RATES": {
        "auth": "1000/min",
        "notifications": "1000/min",
    },
}

# structlog.testing.capture_logs needs loggers that are not cached
configure_structlog(cache_loggers=False)

# let pytest's caplog (attached to the root logger) see the rendered records too
LOGGING["loggers"]["ehr_core"]["propagate"] = True
