"""
Celery application for the marketplace backend.

``DJANGO_SETTINGS_MODULE`` is set before the app is instantiated so Celery
reads its configuration from Django settings (``CELERY_`` prefix).  The
beat schedule driving the negotiation sweeper lives in
``settings.CELERY_BEAT_SCHEDULE``.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("marketplace")

# Reads Django settings with the CELERY_ prefix
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discovers tasks.py in every installed app
app.autodiscover_tasks()
