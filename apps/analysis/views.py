from django.db.models import Count
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import MissingQuery
from apps.surveys.models import Survey
from apps.surveys.permissions import require_creator
from apps.surveys.serializers import SummarySerializer
from apps.surveys.services import get_survey
from .apps import get_client
from .serializers import (
    BulkValidationSerializer,
    SearchMatchSerializer,
    SearchQuerySerializer,
    SummaryRequestSerializer,
    ValidationReportSerializer,
)
from .services import AnalysisOrchestrator
from .tasks import generate_summary_task


def _orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator(get_client())


class SurveySearchView(APIView):
    """
    POST: Natural-language search over all surveys (public).
          Body: {"query": "..."}; returns {"matches": [{survey, reason}]}, best first.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        ser = SearchQuerySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        query = ser.validated_data.get("query") or ""
        if not query.strip():
            raise MissingQuery()

        surveys = (
            Survey.objects
            .select_related("creator")
            .annotate(response_count=Count("responses"))
            .order_by("-created_at", "-id")
        )
        ranked = _orchestrator().search(query, surveys)
        matches = [{"survey": survey, "reason": reason} for survey, reason in ranked]
        return Response({"matches": SearchMatchSerializer(matches, many=True).data})


class ResponseValidateView(APIView):
    """GET: Judge one response against the survey's permitted-responses rubric (creator only)."""

    def get(self, request, survey_id: int, response_id: int):
        report = _orchestrator().validate_response(survey_id, response_id, request.user)
        return Response(ValidationReportSerializer(report).data)


class ResponseValidateAllView(APIView):
    """GET: Validate every response; only the invalid ones are listed (creator only)."""

    def get(self, request, survey_id: int):
        report = _orchestrator().validate_all_responses(survey_id, request.user)
        return Response(BulkValidationSerializer(report).data)


class SurveySummaryView(APIView):
    """
    POST: (Re)generate the survey summary (creator only). The new summary is
          private until published via .../summary/visibility/.
          With {"background": true} the work is queued and 202 is returned.
    """

    def post(self, request, survey_id: int):
        ser = SummaryRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        if ser.validated_data["background"]:
            survey = get_survey(survey_id)
            require_creator(survey, request.user, "generate a summary")
            generate_summary_task.delay(survey.id, request.user.pk)
            return Response({"survey_id": survey.id, "queued": True}, status=status.HTTP_202_ACCEPTED)

        summary = _orchestrator().generate_summary(survey_id, request.user)
        return Response(SummarySerializer(summary).data)
