from __future__ import annotations

from django.db.models import Count, F, Q
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.serializer import paginate
from . import services
from .models import Survey
from .serializers import (
    SummarySerializer,
    SummaryVisibilitySerializer,
    SurveyDetailSerializer,
    SurveyListQuerySerializer,
    SurveyListSerializer,
    SurveyWriteSerializer,
)


def _detail(survey: Survey, viewer) -> dict:
    survey = services.get_survey(survey.pk, with_responses=True)
    return SurveyDetailSerializer(survey, context={"viewer": viewer}).data


class SurveyListCreateView(APIView):
    """
    GET: Paginated list (public), newest first, with `response_count` and
         without response bodies. Optional filters:
         - search (case-insensitive match on title or area)
         - area (exact, case-insensitive)
         - open=true (active, not expired, below capacity)
         - mine=true (surveys created by the caller)
         Query params: page (default 1), page_size (default 10, max 100)

    POST: Create a survey owned by the caller.
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get(self, request):
        params_ser = SurveyListQuerySerializer(data=request.query_params)
        params_ser.is_valid(raise_exception=True)
        params = params_ser.validated_data

        qs = (
            Survey.objects
            .select_related("creator")
            .annotate(response_count=Count("responses"))
            .order_by("-created_at", "-id")
        )

        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(area__icontains=search))

        area = (params.get("area") or "").strip()
        if area:
            qs = qs.filter(area__iexact=area)

        if params.get("open"):
            qs = qs.filter(is_active=True, expiry_date__gt=timezone.now()).filter(
                Q(max_responses__isnull=True) | Q(response_count__lt=F("max_responses"))
            )

        if params.get("mine"):
            # anonymous callers own nothing
            qs = qs.filter(creator=request.user) if request.user.is_authenticated else qs.none()

        return Response(paginate(qs, params, SurveyListSerializer))

    def post(self, request):
        ser = SurveyWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        survey = services.create_survey(request.user, dict(ser.validated_data))
        return Response(_detail(survey, request.user), status=status.HTTP_201_CREATED)


class SurveyDetailView(APIView):
    """
    GET: Survey redacted for the caller (creator sees every response).
    PATCH: Partial update, creator only; closed surveys cannot be edited.
    DELETE: Remove survey and its responses, creator only.
    """

    def get(self, request, survey_id: int):
        survey = services.get_survey(survey_id, with_responses=True)
        return Response(SurveyDetailSerializer(survey, context={"viewer": request.user}).data)

    def patch(self, request, survey_id: int):
        ser = SurveyWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        survey = services.update_survey(survey_id, request.user, dict(ser.validated_data))
        return Response(_detail(survey, request.user))

    def delete(self, request, survey_id: int):
        deleted_id = services.delete_survey(survey_id, request.user)
        return Response({"id": deleted_id, "deleted": True}, status=status.HTTP_200_OK)


class SurveyCloseView(APIView):
    """POST: Stop accepting responses (creator only)."""

    def post(self, request, survey_id: int):
        survey = services.close_survey(survey_id, request.user)
        return Response(_detail(survey, request.user))


class SummaryVisibilityView(APIView):
    """PATCH: Publish or hide the generated summary; content is untouched."""

    def patch(self, request, survey_id: int):
        ser = SummaryVisibilitySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        summary = services.set_summary_visibility(survey_id, request.user, ser.validated_data["is_visible"])
        return Response(SummarySerializer(summary).data)
