"""Production settings for presupuestos de taller.

Requires ``ALLOWED_HOSTS`` and an explicit ``ADJUNTOS_DIR`` on persistent storage.
"""
from .base import *  # noqa: F403

DEBUG = False
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")  # noqa: F405
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])  # noqa: F405

ADJUNTOS_DIR = env("ADJUNTOS_DIR")  # noqa: F405
S3_USE_SSL = env.bool("S3_USE_SSL", default=True)  # noqa: F405

SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)  # noqa: F405
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=0)  # noqa: F405
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

LOGGING["formatters"]["simple"]["format"] = (  # noqa: F405
    "%(asctime)s %(levelname)s %(process)d %(name)s: %(message)s"
)
