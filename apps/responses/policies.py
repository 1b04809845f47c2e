"""
Response lifecycle policy: may this user submit, update or delete a response now?

The checks are evaluated in a fixed order and the first failing one wins, so
callers can rely on which error surfaces when several conditions hold:

    1. survey exists          -> SurveyNotFound
    2. survey is active       -> SurveyInactive
    3. capacity not reached   -> CapacityExceeded   (checked before expiry)
    4. survey not expired     -> SurveyExpired
    5. no earlier response    -> DuplicateResponse

Updates reuse 1, 2 and 4; deletes reuse 1 and 4. Both then require the
response to exist and the actor to own it (deletes also allow the creator).
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from django.utils import timezone
from rest_framework.exceptions import ValidationError

from apps.core.exceptions import (
    CapacityExceeded,
    DuplicateResponse,
    ResponseNotFound,
    SurveyExpired,
    SurveyInactive,
    SurveyNotFound,
    Unauthorized,
)
from apps.core.utility import canonical_id
from apps.surveys.permissions import is_creator

MAX_CONTENT_LENGTH = 2000


def clean_content(content: Any) -> str:
    text = "" if content is None else str(content).strip()
    if not text:
        raise ValidationError({"content": ["Response content cannot be empty."]})
    if len(text) > MAX_CONTENT_LENGTH:
        raise ValidationError({"content": [f"Ensure this field has no more than {MAX_CONTENT_LENGTH} characters."]})
    return text


def require_survey(survey) -> None:
    if survey is None:
        raise SurveyNotFound()


def _require_active(survey) -> None:
    if not survey.is_active:
        raise SurveyInactive()


def _require_capacity(survey) -> None:
    if survey.max_responses is not None and survey.responses.count() >= survey.max_responses:
        raise CapacityExceeded()


def _require_not_expired(survey, now: Optional[datetime]) -> None:
    if survey.is_expired(now):
        raise SurveyExpired()


def _require_response(response) -> None:
    if response is None:
        raise ResponseNotFound()


def _is_author(response, user) -> bool:
    return canonical_id(response.user_id) == canonical_id(user)


def check_can_submit(survey, user, *, now: Optional[datetime] = None) -> None:
    now = now or timezone.now()
    require_survey(survey)
    _require_active(survey)
    _require_capacity(survey)
    _require_not_expired(survey, now)
    if survey.has_user_responded(user):
        raise DuplicateResponse()


def check_can_update(survey, response, user, *, now: Optional[datetime] = None) -> None:
    now = now or timezone.now()
    require_survey(survey)
    _require_active(survey)
    _require_not_expired(survey, now)
    _require_response(response)
    if not _is_author(response, user):
        raise Unauthorized("Only the author can update this response.")


def check_can_delete(survey, response, user, *, now: Optional[datetime] = None) -> None:
    now = now or timezone.now()
    require_survey(survey)
    _require_not_expired(survey, now)
    _require_response(response)
    if not (_is_author(response, user) or is_creator(survey, user)):
        raise Unauthorized("Only the author or the survey creator can delete this response.")
