# channel-backend/core/settings.py
"""
Django settings for the channel backend.

Everything deployment specific comes from the environment (optionally a
``.env`` file next to manage.py).
"""
import os
import sys
from datetime import timedelta
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


TESTING = "pytest" in sys.modules or (len(sys.argv) > 1 and sys.argv[1] == "test")

DEBUG = env_bool("DEBUG", False)

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    if DEBUG or TESTING:
        SECRET_KEY = "django-insecure-dev-key-for-local-testing-only"
    else:
        raise RuntimeError("SECRET_KEY environment variable is not set")

ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "common",
    "accounts",
    "catalog",
    "inventory",
    "pickups",
    "orders",
    "commissions",
    "notifications",
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

ROOT_URLCONF = "core.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "core.wsgi.application"

# PostgreSQL in production (row locks and SKIP LOCKED need it); SQLite otherwise.
DATABASE_URL = os.getenv("DATABASE_URL")
if DATABASE_URL:
    DATABASES = {"default": dj_database_url.parse(DATABASE_URL, conn_max_age=600)}
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(os.getenv("JWT_ACCESS_MINUTES", "60"))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.getenv("JWT_REFRESH_DAYS", "7"))),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Channel Backend API",
    "DESCRIPTION": "Stock pickups, reservations, orders and transfers",
    "VERSION": "1.0.0",
}

# ---------------------------------------------------------------------------
# Pickup rules
# ---------------------------------------------------------------------------
PICKUP_RULES = {
    "DEADLINE_HOURS": int(os.getenv("PICKUP_DEADLINE_HOURS", "48")),
    "DEFAULT_ALLOWANCE": int(os.getenv("PICKUP_DEFAULT_ALLOWANCE", "1")),
    "EXTENDED_ALLOWANCE": int(os.getenv("PICKUP_EXTENDED_ALLOWANCE", "3")),
    "ADDITIONAL_REQUEST_COOLDOWN_HOURS": int(os.getenv("PICKUP_REQUEST_COOLDOWN_HOURS", "24")),
    "SWEEP_BATCH_SIZE": int(os.getenv("PICKUP_SWEEP_BATCH_SIZE", "100")),
    "SWEEP_INTERVAL_SECONDS": int(os.getenv("PICKUP_SWEEP_INTERVAL_SECONDS", "60")),
}

COMMISSION_LEDGER_BACKEND = os.getenv(
    "COMMISSION_LEDGER_BACKEND", "commissions.ledger.DatabaseCommissionLedger"
)

REALTIME_PUSH_URL = os.getenv("REALTIME_PUSH_URL", "")
REALTIME_PUSH_TIMEOUT = float(os.getenv("REALTIME_PUSH_TIMEOUT", "5"))

# ---------------------------------------------------------------------------
# Celery
# ---------------------------------------------------------------------------
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", TESTING)
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    "expire-overdue-pickups": {
        "task": "pickups.tasks.expire_overdue_pickups",
        "schedule": float(PICKUP_RULES["SWEEP_INTERVAL_SECONDS"]),
    },
}

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{levelname}] {asctime} {name} {process:d} - {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "simple": {
            "format": "{asctime} [{levelname}] {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
            "level": "WARNING" if TESTING else LOG_LEVEL,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}

APP_LOGGERS = ["pickups", "orders", "inventory", "notifications", "commissions", "accounts"]

if LOG_DIR:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    LOGGING["handlers"]["file"] = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(Path(LOG_DIR) / "channel.log"),
        "maxBytes": 1024 * 1024 * 10,
        "backupCount": 5,
        "formatter": "verbose",
        "level": LOG_LEVEL,
    }
    LOGGING["handlers"]["error_file"] = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(Path(LOG_DIR) / "errors.log"),
        "maxBytes": 1024 * 1024 * 10,
        "backupCount": 5,
        "formatter": "verbose",
        "level": "ERROR",
    }

_app_handlers = ["console", "file", "error_file"] if LOG_DIR else ["console"]
for _name in APP_LOGGERS:
    LOGGING["loggers"][_name] = {"handlers": _app_handlers, "level": LOG_LEVEL, "propagate": False}
