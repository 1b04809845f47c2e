from rest_framework import serializers

from apps.surveys.serializers import SurveyListSerializer


class SearchQuerySerializer(serializers.Serializer):
    # blank and missing are both reported as MissingQuery by the view
    query = serializers.CharField(required=False, allow_blank=True, trim_whitespace=True)


class SearchMatchSerializer(serializers.Serializer):
    survey = SurveyListSerializer()
    reason = serializers.CharField()


class SummaryRequestSerializer(serializers.Serializer):
    background = serializers.BooleanField(required=False, default=False)


class ValidationReportSerializer(serializers.Serializer):
    response_id = serializers.IntegerField()
    is_valid = serializers.BooleanField()
    feedback = serializers.CharField(allow_blank=True)


class InvalidResponseSerializer(serializers.Serializer):
    response_id = serializers.IntegerField()
    user_id = serializers.IntegerField()
    reason = serializers.CharField(allow_blank=True)


class BulkValidationSerializer(serializers.Serializer):
    checked = serializers.IntegerField()
    invalid = InvalidResponseSerializer(many=True)
