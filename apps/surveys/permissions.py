"""
Authorization policy for surveys.

Roles are structural and never stored: the creator owns the survey, a
respondent has a response in it, everyone else is OTHER. Management actions
are creator-only; reads by non-creators are redacted to the actor's own
response.
"""
from __future__ import annotations

from typing import List, Optional

from apps.core.enums import SurveyRole
from apps.core.exceptions import NotCreator, Unauthorized
from apps.core.utility import canonical_id


def actor_id(user) -> Optional[str]:
    """Canonical id of an authenticated actor, None for anonymous callers."""
    if user is None or not getattr(user, "is_authenticated", True):
        return None
    if getattr(user, "pk", user) is None:
        return None
    return canonical_id(user)


def is_creator(survey, user) -> bool:
    uid = actor_id(user)
    return uid is not None and canonical_id(survey.creator_id) == uid


def role_for(survey, user) -> SurveyRole:
    if is_creator(survey, user):
        return SurveyRole.CREATOR
    if actor_id(user) is not None and survey.has_user_responded(user):
        return SurveyRole.RESPONDENT
    return SurveyRole.OTHER


def require_creator(survey, user, action: Optional[str] = None) -> None:
    if not is_creator(survey, user):
        if action:
            raise NotCreator(f"Only the survey creator can {action}.")
        raise NotCreator()


def require_response_access(survey, response, user) -> None:
    """A single response is readable by its author and the survey creator."""
    uid = actor_id(user)
    if uid is not None and (canonical_id(response.user_id) == uid or is_creator(survey, user)):
        return
    raise Unauthorized()


def visible_responses(survey, user) -> List:
    """All responses for the creator, only the actor's own for anyone else."""
    if is_creator(survey, user):
        return list(survey.responses.all())
    if actor_id(user) is None:
        return []
    own = survey.get_user_response(user)
    return [own] if own is not None else []


def can_view_summary(survey, user) -> bool:
    summary = survey.summary
    if summary is None:
        return False
    return summary.is_visible or is_creator(survey, user)
