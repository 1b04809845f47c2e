"""
Analysis orchestrator: sequences calls to the text-analysis collaborator for
search, response validation and summarization, and writes summaries back
onto the survey.

Collaborator calls happen outside any database transaction; a failing call
surfaces as ``AnalysisUnavailable`` and is never retried or replaced by an
older result.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Tuple

from django.db import transaction

from apps.core.exceptions import AnalysisUnavailable, NoResponses, ResponseNotFound
from apps.surveys.models import Summary, Survey
from apps.surveys.permissions import require_creator
from apps.surveys.services import get_survey
from .clients import AnalysisClient, AnalysisClientError

logger = logging.getLogger(__name__)


def search_projection(survey: Survey) -> Dict[str, Any]:
    """What the collaborator may see of a survey: never response bodies."""
    return {
        "id": str(survey.pk),
        "title": survey.title,
        "area": survey.area,
        "description": survey.description or "",
    }


class AnalysisOrchestrator:
    def __init__(self, client: AnalysisClient):
        self.client = client

    def _call(self, operation: str, fn: Callable, *args):
        try:
            return fn(*args)
        except AnalysisClientError as exc:
            logger.warning("Analysis %s failed: %s", operation, exc)
            raise AnalysisUnavailable() from exc

    # ---- Search ------------------------------------------------------------------

    def search(self, query: str, surveys: Iterable[Survey]) -> List[Tuple[Survey, str]]:
        """
        Rank `surveys` for `query`; returns (survey, reason) pairs, best first.
        A blank query or an empty corpus yields [] without calling out.
        """
        query = " ".join((query or "").split())
        if not query:
            return []
        by_id = {str(s.pk): s for s in surveys}
        if not by_id:
            return []

        corpus = [search_projection(s) for s in by_id.values()]
        matches = self._call("search", self.client.search, query, corpus)

        ranked: List[Tuple[Survey, str]] = []
        seen = set()
        for match in matches:
            survey = by_id.get(str(match.survey_id))
            # the collaborator may echo ids we never sent
            if survey is None or survey.pk in seen:
                continue
            seen.add(survey.pk)
            ranked.append((survey, match.reason))
        logger.info("Search ranked %d of %d surveys", len(ranked), len(corpus))
        return ranked

    # ---- Validation --------------------------------------------------------------

    def validate_response(self, survey_id: int, response_id: int, actor) -> Dict[str, Any]:
        survey = get_survey(survey_id)
        require_creator(survey, actor, "validate responses")
        response = survey.responses.filter(pk=response_id).first()
        if response is None:
            raise ResponseNotFound()
        result = self._call("validate", self.client.validate, survey.permitted_responses, response.content)
        return {
            "response_id": response.id,
            "is_valid": result.is_valid,
            "feedback": result.feedback,
        }

    def validate_all_responses(self, survey_id: int, actor) -> Dict[str, Any]:
        """Validate every response, reporting only the ones judged invalid."""
        survey = get_survey(survey_id)
        require_creator(survey, actor, "validate responses")
        responses = list(survey.responses.all())
        invalid = []
        for response in responses:
            result = self._call("validate", self.client.validate, survey.permitted_responses, response.content)
            if not result.is_valid:
                invalid.append({
                    "response_id": response.id,
                    "user_id": response.user_id,
                    "reason": result.feedback,
                })
        logger.info(
            "Bulk validation finished",
            extra={"survey_id": survey.id, "checked": len(responses), "invalid": len(invalid)},
        )
        return {"checked": len(responses), "invalid": invalid}

    # ---- Summary -----------------------------------------------------------------

    def generate_summary(self, survey_id: int, actor) -> Summary:
        """(Re)generate the summary; the stored result always starts private."""
        survey = get_survey(survey_id)
        require_creator(survey, actor, "generate a summary")
        contents = [r.content for r in survey.responses.all()]
        if not contents:
            raise NoResponses()

        content = self._call("summarize", self.client.summarize, contents, survey.summary_instructions)

        with transaction.atomic():
            locked = get_survey(survey_id, for_update=True)
            summary = locked.set_summary(content)
        logger.info("Summary generated", extra={"survey_id": survey_id, "responses": len(contents)})
        return summary
