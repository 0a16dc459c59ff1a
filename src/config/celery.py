"""
Celery configuration for the order administration service.

DJANGO_SETTINGS_MODULE is set before the app is created so Celery reads
its configuration from the Django settings (``CELERY_`` prefix), including
the beat schedule for the outbox publisher and the overdue-request reminder.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("foodorder")

# Read CELERY_* settings from Django
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discover tasks.py in every installed app
app.autodiscover_tasks()
