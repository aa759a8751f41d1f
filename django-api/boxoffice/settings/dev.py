"""
Development settings.

Extends the base settings by enabling debugging and printing outgoing mail
to the console. Do not use these settings in production.
"""
from .base import *  # noqa

DEBUG = True
ALLOWED_HOSTS = ["*", "127.0.0.1", "localhost"]
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

LOGGING["loggers"]["ticketing"]["level"] = "DEBUG"  # noqa: F405
