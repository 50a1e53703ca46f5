"""Celery app factory."""

from celery import Celery

celery_app = Celery("interviews", include=["workers.tasks.stitching"])
celery_app.config_from_object("workers.celery_config")
