"""Base Django settings for the presupuestos de taller service."""
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent.parent

env = environ.Env(
    DEBUG=(bool, False),
)

environ.Env.read_env(BASE_DIR / ".env")

SECRET_KEY = env("SECRET_KEY")
DEBUG = env.bool("DEBUG", default=False)
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "core",
    "catalogo",
    "presupuestos",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": env.db("DATABASE_URL"),
}

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

LANGUAGE_CODE = "es"
TIME_ZONE = env("TIME_ZONE", default="UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

MEDIA_URL = "media/"
MEDIA_ROOT = BASE_DIR / "media"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Adjuntos de hasta 50MB llegan por multipart; por encima de 5MB van a disco temporal.
ADJUNTOS_MAX_BYTES = 50 * 1024 * 1024
ADJUNTOS_DIR = env("ADJUNTOS_DIR", default=str(BASE_DIR / "media" / "adjuntos"))
FILE_UPLOAD_MAX_MEMORY_SIZE = 5 * 1024 * 1024
DATA_UPLOAD_MAX_MEMORY_SIZE = ADJUNTOS_MAX_BYTES + 1024 * 1024

CELERY_BROKER_URL = env("CELERY_BROKER_URL", default="redis://redis:6379/0")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", default="redis://redis:6379/1")
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    "presupuestos-scheduler-tick": {
        "task": "presupuestos.tasks.scheduler_tick",
        "schedule": 60.0,
    },
}

# Staging de los Excel subidos (MinIO en desarrollo, S3 en producción)
S3_ENDPOINT_URL = env(
    "S3_ENDPOINT_URL",
    default=f"http://{env('MINIO_ENDPOINT', default='minio:9000')}",
)
S3_ACCESS_KEY_ID = env(
    "S3_ACCESS_KEY_ID",
    default=env("MINIO_ROOT_USER", default="minioadmin"),
)
S3_SECRET_ACCESS_KEY = env(
    "S3_SECRET_ACCESS_KEY",
    default=env("MINIO_ROOT_PASSWORD", default="minioadmin"),
)
S3_BUCKET_NAME = env(
    "S3_BUCKET_NAME",
    default=env("MINIO_BUCKET_NAME", default="presupuestos"),
)
S3_USE_SSL = env.bool(
    "S3_USE_SSL",
    default=env.bool("MINIO_USE_SSL", default=False),
)

# Carga automática de Excel
EXCEL_PATH = env("EXCEL_PATH", default="")
EXCEL_SHEET = env("EXCEL_SHEET", default="")
SCHEDULER_INTERVALO_MINUTOS = env.int("SCHEDULER_INTERVALO_MINUTOS", default=30)

# Primer mes del resumen mensual por taller (YYYY-MM)
ESTADISTICAS_MES_INICIO = env("ESTADISTICAS_MES_INICIO", default="2025-08")

LOG_LEVEL = env("LOG_LEVEL", default="INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "presupuestos": {"level": env("PRESUPUESTOS_LOG_LEVEL", default=LOG_LEVEL)},
        "botocore": {"level": "WARNING"},
    },
}
