from __future__ import annotations
import os
from logging.config import dictConfig

from celery import Celery
from celery.signals import setup_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "surveyhub.settings")

celery_app = Celery("surveyhub")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks()


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Workers log through Django's LOGGING dict instead of Celery's defaults."""
    from django.conf import settings

    dictConfig(settings.LOGGING)


__all__ = ("celery_app",)
