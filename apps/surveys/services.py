from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from rest_framework.exceptions import ValidationError

from apps.core.exceptions import SurveyClosed, SurveyNotFound
from .models import Summary, Survey
from .permissions import require_creator

logger = logging.getLogger(__name__)


def get_survey(survey_id: int, *, for_update: bool = False, with_responses: bool = False) -> Survey:
    """Load one survey or raise SurveyNotFound; `for_update` must run inside a transaction."""
    qs = Survey.objects.select_related("creator")
    if for_update:
        qs = Survey.objects.select_for_update()
    if with_responses:
        qs = qs.prefetch_related("responses__user")
    survey = qs.filter(pk=survey_id).first()
    if survey is None:
        raise SurveyNotFound()
    return survey


@transaction.atomic
def create_survey(creator, data: Dict[str, Any]) -> Survey:
    survey = Survey.objects.create(creator=creator, **data)
    logger.info("Survey created", extra={"survey_id": survey.id, "creator_id": creator.pk})
    return survey


@transaction.atomic
def update_survey(survey_id: int, actor, data: Dict[str, Any]) -> Survey:
    """Partial update of metadata/guidelines; the creator never changes."""
    survey = get_survey(survey_id, for_update=True)
    require_creator(survey, actor, "update the survey")
    if not survey.is_active:
        raise SurveyClosed()

    max_responses: Optional[int] = data.get("max_responses")
    if max_responses is not None:
        current = survey.responses.count()
        if max_responses < current:
            raise ValidationError({"max_responses": [f"Survey already has {current} responses."]})

    data.pop("creator", None)
    for field, value in data.items():
        setattr(survey, field, value)
    survey.save()
    logger.info("Survey updated", extra={"survey_id": survey.id, "fields": sorted(data)})
    return survey


@transaction.atomic
def delete_survey(survey_id: int, actor) -> int:
    survey = get_survey(survey_id, for_update=True)
    require_creator(survey, actor, "delete the survey")
    survey.delete()
    logger.info("Survey deleted", extra={"survey_id": survey_id})
    return survey_id


@transaction.atomic
def close_survey(survey_id: int, actor) -> Survey:
    survey = get_survey(survey_id, for_update=True)
    require_creator(survey, actor, "close the survey")
    survey.close()
    logger.info("Survey closed", extra={"survey_id": survey.id})
    return survey


@transaction.atomic
def set_summary_visibility(survey_id: int, actor, is_visible: bool) -> Summary:
    survey = get_survey(survey_id, for_update=True)
    require_creator(survey, actor, "change summary visibility")
    summary = survey.set_summary_visibility(is_visible)
    logger.info("Summary visibility changed", extra={"survey_id": survey.id, "is_visible": summary.is_visible})
    return summary
