from __future__ import annotations

import logging

from django.contrib.auth import get_user_model

from surveyhub.celery import celery_app
from .apps import get_client
from .services import AnalysisOrchestrator

logger = logging.getLogger(__name__)


# No autoretry: a failed collaborator call is reported, not replayed.
@celery_app.task(bind=True, acks_late=True)
def generate_summary_task(self, survey_id: int, actor_id: int) -> dict:
    """
    Regenerate a survey summary off the request path.
    Authorization is re-checked here against the current survey state.
    """
    actor = get_user_model().objects.get(pk=actor_id)
    summary = AnalysisOrchestrator(get_client()).generate_summary(survey_id, actor)
    logger.info("Background summary stored", extra={"survey_id": survey_id})
    return {"survey_id": survey_id, "generated_at": summary.generated_at.isoformat()}
