"""
Django settings for the jewelsync project.

Values come from environment variables so the same settings module serves
the worker, the beat scheduler, management commands and tests.
"""

import os
import platform
from pathlib import Path

from jewelsync.scheduling import beat_schedule

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("JEWELSYNC_DATA_DIR", BASE_DIR / "data"))

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-dev-key-change-me")
DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() == "true"
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "jewelsync",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("JEWELSYNC_DATABASE", str(DATA_DIR / "jewelsync.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = os.environ.get("TIME_ZONE", "UTC")

# Sync engine
SYNC_WORK_DIR = os.environ.get("SYNC_WORK_DIR", str(DATA_DIR / "work"))
SYNC_EXPORT_DIR = os.environ.get("SYNC_EXPORT_DIR", str(DATA_DIR / "exports"))
SYNC_PREFERENCES_FILE = os.environ.get("SYNC_PREFERENCES_FILE", str(DATA_DIR / "preferences.json"))
SYNC_REMOTE_BACKEND = os.environ.get("SYNC_REMOTE_BACKEND", "local")
SYNC_GCS_BUCKET = os.environ.get("SYNC_GCS_BUCKET", "")
SYNC_GCS_CREDENTIALS_FILE = os.environ.get("SYNC_GCS_CREDENTIALS_FILE", "")
SYNC_LOCAL_REMOTE_ROOT = os.environ.get("SYNC_LOCAL_REMOTE_ROOT", str(DATA_DIR / "remote"))
SYNC_BACKUP_FOLDER = os.environ.get("SYNC_BACKUP_FOLDER", "database_backups")
SYNC_BACKUP_FILE_NAME = os.environ.get("SYNC_BACKUP_FILE_NAME", "backup_file.xlsx")
SYNC_KEEP_BACKUPS = int(os.environ.get("SYNC_KEEP_BACKUPS", "5"))
SYNC_FREQUENCY = os.environ.get("SYNC_FREQUENCY", "weekly")
SYNC_DEVICE_LABEL = os.environ.get("SYNC_DEVICE_LABEL", platform.node())

# Celery
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = beat_schedule(SYNC_FREQUENCY)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "jewelsync": {
            "handlers": ["console"],
            "level": os.environ.get("JEWELSYNC_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
