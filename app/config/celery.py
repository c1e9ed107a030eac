"""
Celery configuration for the Guincoin ledger service.

Celery runs the work that must not sit on a request path:
- Notification emails (queued on transaction commit)
- Recurring allotment deposits (daily, via django-celery-beat)
- The daily ledger report (daily, via django-celery-beat)

Periodic schedules live in the database (DatabaseScheduler) and are created
by the coins data migration. Tasks are auto-discovered from installed apps.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("guincoin")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
