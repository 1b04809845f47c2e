"""
Unit-of-work wrappers around the survey aggregate for response mutations.

Every mutation runs in one transaction holding a row lock on the parent
survey, so the capacity count, the duplicate check and the write all see the
same version of the survey and no partial state is ever visible.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import ResponseNotFound
from apps.surveys.models import Survey
from apps.surveys.permissions import require_creator, require_response_access
from apps.surveys.services import get_survey
from .models import SurveyResponse
from .policies import check_can_delete, check_can_update, require_survey

logger = logging.getLogger(__name__)


def _locked_survey(survey_id: int) -> Optional[Survey]:
    return Survey.objects.select_for_update().filter(pk=survey_id).first()


@transaction.atomic
def submit_response(survey_id: int, actor, content: str) -> SurveyResponse:
    survey = _locked_survey(survey_id)
    require_survey(survey)
    response = survey.add_response(actor, content)
    logger.info("Response submitted", extra={"survey_id": survey.id, "user_id": actor.pk})
    return response


@transaction.atomic
def update_response(survey_id: int, response_id: int, actor, content: str) -> SurveyResponse:
    now = timezone.now()
    survey = _locked_survey(survey_id)
    response = survey.responses.filter(pk=response_id).first() if survey else None
    check_can_update(survey, response, actor, now=now)
    survey.update_user_response(actor, content, now=now)
    logger.info("Response updated", extra={"survey_id": survey.id, "response_id": response_id})
    return SurveyResponse.objects.select_related("user").get(pk=response_id)


@transaction.atomic
def delete_response(survey_id: int, response_id: int, actor) -> int:
    now = timezone.now()
    survey = _locked_survey(survey_id)
    response = survey.responses.filter(pk=response_id).first() if survey else None
    check_can_delete(survey, response, actor, now=now)
    survey.remove_user_response(response.user_id)
    logger.info(
        "Response deleted",
        extra={"survey_id": survey.id, "response_id": response_id, "deleted_by": actor.pk},
    )
    return response_id


def get_response(survey_id: int, response_id: int, actor) -> SurveyResponse:
    survey = get_survey(survey_id)
    response = survey.responses.select_related("user").filter(pk=response_id).first()
    if response is None:
        raise ResponseNotFound()
    require_response_access(survey, response, actor)
    return response


def list_responses(survey_id: int, actor) -> List[SurveyResponse]:
    survey = get_survey(survey_id)
    require_creator(survey, actor, "list all responses")
    return list(survey.responses.select_related("user"))
