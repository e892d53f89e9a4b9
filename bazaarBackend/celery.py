"""
Celery Configuration for Bazaar Backend

This module configures Celery for handling asynchronous side effects of the
order engine (clearing a buyer's cart once payment is confirmed).
"""

import os

from celery import Celery


# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bazaarBackend.settings")

# Create Celery app
app = Celery("bazaarBackend")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks(["marketplace.cart"])

# Celery configuration settings
app.conf.update(
    # Task routing - organize tasks by type
    task_routes={
        "marketplace.cart.tasks.*": {"queue": "marketplace_tasks"},
    },
    # Task execution settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=60 * 60 * 24,  # Results expire after 24 hours
    # Worker settings
    worker_max_tasks_per_child=1000,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
)
