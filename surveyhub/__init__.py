from __future__ import annotations

# Load the Celery app with Django so shared tasks bind to it.
from .celery import celery_app

__all__ = ("celery_app",)
