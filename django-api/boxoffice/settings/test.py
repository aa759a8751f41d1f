"""Settings for the pytest suite: SQLite, in-memory mail and cache."""
from .base import *  # noqa

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "boxoffice-test",
    }
}

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
DEFAULT_FROM_EMAIL = "tickets@example.com"
SUPPORT_EMAIL = "support@example.com"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYMENT_GATEWAYS = {
    "square": {"access_token": "sq-test", "location_id": "LOC1", "application_id": "sq-app"},
    "cashapp": {
        "access_token": "sq-test",
        "location_id": "LOC1",
        "application_id": "sq-app",
        "redirect_url": "https://shop.example.com/resume",
    },
    "paypal": {
        "client_id": "pp-client",
        "client_secret": "pp-secret",
        "return_url": "https://shop.example.com/resume",
        "cancel_url": "https://shop.example.com/cancel",
    },
}
