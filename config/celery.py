"""
Celery application for background backup and restore tasks.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("jewelsync")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
