import logging

from django.apps import AppConfig, apps
from django.conf import settings


class AnalysisConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.analysis"

    client = None

    def ready(self):
        """Build the configured text-analysis client once per process."""
        from .clients import build_client

        logger = logging.getLogger(__name__)
        self.client = build_client(settings.ANALYSIS_CLIENT)
        logger.info("Analysis client ready: %s", settings.ANALYSIS_CLIENT)


def get_client():
    return apps.get_app_config("analysis").client
