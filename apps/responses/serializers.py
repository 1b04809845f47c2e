from rest_framework import serializers

from apps.accounts.serializers import UserBriefSerializer
from .models import SurveyResponse
from .policies import MAX_CONTENT_LENGTH


class ResponseContentSerializer(serializers.Serializer):
    # trimmed before the length check, so 1..2000 characters after trim
    content = serializers.CharField(max_length=MAX_CONTENT_LENGTH)


class SurveyResponseReadSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = SurveyResponse
        fields = ["id", "survey", "user", "content", "created_at", "updated_at"]
