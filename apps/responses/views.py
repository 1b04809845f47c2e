from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .serializers import ResponseContentSerializer, SurveyResponseReadSerializer


class SurveyResponseListCreateView(APIView):
    """
    POST: Submit the caller's single response to a survey.
          Rejections, first match wins: not found, inactive, capacity,
          expired, duplicate.
    GET: Every response of the survey (creator only).
    """

    def post(self, request, survey_id: int):
        ser = ResponseContentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        resp = services.submit_response(survey_id, request.user, ser.validated_data["content"])
        return Response(SurveyResponseReadSerializer(resp).data, status=status.HTTP_201_CREATED)

    def get(self, request, survey_id: int):
        responses = services.list_responses(survey_id, request.user)
        data = SurveyResponseReadSerializer(responses, many=True).data
        return Response({"count": len(data), "results": data})


class SurveyResponseDetailView(APIView):
    """
    GET: One response (author or survey creator).
    PATCH/PUT: Replace the caller's own response content.
    DELETE: Remove a response (author or survey creator).
    """

    def get(self, request, survey_id: int, response_id: int):
        resp = services.get_response(survey_id, response_id, request.user)
        return Response(SurveyResponseReadSerializer(resp).data)

    def patch(self, request, survey_id: int, response_id: int):
        ser = ResponseContentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        resp = services.update_response(survey_id, response_id, request.user, ser.validated_data["content"])
        return Response(SurveyResponseReadSerializer(resp).data)

    put = patch

    def delete(self, request, survey_id: int, response_id: int):
        deleted_id = services.delete_response(survey_id, response_id, request.user)
        return Response({"id": deleted_id, "deleted": True}, status=status.HTTP_200_OK)
