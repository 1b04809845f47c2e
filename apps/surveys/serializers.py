from django.utils import timezone
from rest_framework import serializers

from apps.accounts.serializers import UserBriefSerializer
from apps.core.serializer import PaginationQuerySerializer
from apps.responses.serializers import SurveyResponseReadSerializer
from .models import Survey
from .permissions import can_view_summary, role_for, visible_responses

MAX_DOMAINS = 10
MAX_DOMAIN_LENGTH = 30


class GuidelinesSerializer(serializers.Serializer):
    """Guidelines are stored flat on Survey and exposed as one nested object."""
    question = serializers.CharField()
    permitted_domains = serializers.ListField(
        child=serializers.CharField(max_length=MAX_DOMAIN_LENGTH),
        allow_empty=False,
        max_length=MAX_DOMAINS,
    )
    permitted_responses = serializers.CharField()
    summary_instructions = serializers.CharField()

    def validate_permitted_domains(self, value):
        # a set of domains: drop repeats, keep first-seen order
        seen = []
        for domain in value:
            if domain not in seen:
                seen.append(domain)
        return seen


class SurveyWriteSerializer(serializers.ModelSerializer):
    guidelines = GuidelinesSerializer(source="*")

    class Meta:
        model = Survey
        fields = ["title", "area", "description", "guidelines", "expiry_date", "is_active", "max_responses"]
        extra_kwargs = {
            "max_responses": {"min_value": 1},
        }

    def validate_expiry_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError("Expiry date must be in the future.")
        return value


class SurveyListQuerySerializer(PaginationQuerySerializer):
    search = serializers.CharField(required=False, allow_blank=True, help_text="Match on title or area")
    area = serializers.CharField(required=False, allow_blank=True, help_text="Exact area, case-insensitive")
    open = serializers.BooleanField(required=False, default=False, help_text="Only surveys accepting responses")
    mine = serializers.BooleanField(required=False, default=False, help_text="Only the caller's surveys")


class SummarySerializer(serializers.Serializer):
    content = serializers.CharField()
    is_visible = serializers.BooleanField()
    generated_at = serializers.DateTimeField()


class SummaryVisibilitySerializer(serializers.Serializer):
    is_visible = serializers.BooleanField()


class SurveyListSerializer(serializers.ModelSerializer):
    creator = UserBriefSerializer(read_only=True)
    response_count = serializers.SerializerMethodField()
    is_expired = serializers.SerializerMethodField()
    accepting_responses = serializers.SerializerMethodField()

    class Meta:
        model = Survey
        fields = [
            "id", "title", "area", "description", "creator",
            "expiry_date", "is_active", "is_expired", "accepting_responses",
            "max_responses", "response_count", "created_at", "updated_at",
        ]

    def get_response_count(self, obj: Survey) -> int:
        return obj.count_responses()

    def get_is_expired(self, obj: Survey) -> bool:
        return obj.is_expired()

    def get_accepting_responses(self, obj: Survey) -> bool:
        return obj.can_accept_responses()


class SurveyDetailSerializer(SurveyListSerializer):
    """
    Survey as seen by ``context["viewer"]``: the creator gets every response,
    anyone else only their own, while ``response_count`` stays the true total.
    """
    guidelines = GuidelinesSerializer(source="*", read_only=True)
    responses = serializers.SerializerMethodField()
    summary = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()

    class Meta(SurveyListSerializer.Meta):
        fields = SurveyListSerializer.Meta.fields + ["guidelines", "role", "responses", "summary"]

    def _viewer(self):
        return self.context.get("viewer")

    def get_responses(self, obj: Survey):
        return SurveyResponseReadSerializer(visible_responses(obj, self._viewer()), many=True).data

    def get_summary(self, obj: Survey):
        if not can_view_summary(obj, self._viewer()):
            return None
        return SummarySerializer(obj.summary).data

    def get_role(self, obj: Survey) -> str:
        return str(role_for(obj, self._viewer()))
