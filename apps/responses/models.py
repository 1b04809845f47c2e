from django.conf import settings
from django.db import models
from django.utils import timezone
from auditlog.registry import auditlog

from .policies import MAX_CONTENT_LENGTH


class SurveyResponse(models.Model):
    """One respondent's answer; only ever reached through its parent survey."""
    survey = models.ForeignKey("surveys.Survey", on_delete=models.CASCADE, related_name="responses")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="survey_responses")
    content = models.TextField(max_length=MAX_CONTENT_LENGTH)
    # Set explicitly by the survey aggregate (not auto_now) so updates can
    # guarantee a strictly newer updated_at.
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["survey", "user"], name="uniq_response_per_user"),
        ]
        indexes = [
            models.Index(fields=["survey", "created_at"], name="idx_response_survey_time"),
        ]

    def __str__(self):
        return f"response#{self.id} survey#{self.survey_id}"


# Register audit logging for responses
auditlog.register(SurveyResponse)
