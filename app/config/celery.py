"""
Celery configuration for the chat backend.

The chat core never waits on notification delivery: command handlers enqueue
notification tasks after their transaction commits and move on. Redis is both
the message broker and result backend. Tasks are auto-discovered from all
installed Django apps.

Usage:
    from notifications.tasks import notify_new_message

    notify_new_message.delay(chat.id, message.id, sender.id, recipient_ids)

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
