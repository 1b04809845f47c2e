from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, models, transaction
from django.utils import timezone
from auditlog.registry import auditlog

from apps.core.exceptions import AlreadyClosed, DuplicateResponse, NoSummary
from apps.core.models import TimeStampedModel
from apps.core.utility import canonical_id
from apps.responses.policies import check_can_submit, clean_content

DEFAULT_MAX_RESPONSES = 100


@dataclass(frozen=True)
class Summary:
    content: str
    is_visible: bool
    generated_at: datetime


class Survey(TimeStampedModel):
    """
    A creator-owned, time-boxed request for free-text responses.

    The survey row is the consistency boundary for its responses and summary:
    callers mutate them through the methods below while holding a row lock
    (see ``apps.responses.services``).
    """
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="surveys")
    title = models.CharField(max_length=255)
    area = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    # Guidelines
    question = models.TextField()
    permitted_domains = models.JSONField(default=list)
    permitted_responses = models.TextField()
    summary_instructions = models.TextField()

    expiry_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    max_responses = models.PositiveIntegerField(null=True, blank=True, default=DEFAULT_MAX_RESPONSES)

    # Embedded summary; absent while summary_generated_at is null
    summary_content = models.TextField(blank=True, null=True)
    summary_is_visible = models.BooleanField(default=False)
    summary_generated_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=["creator", "-created_at"], name="idx_survey_creator_time"),
            models.Index(fields=["expiry_date"], name="idx_survey_expiry"),
            models.Index(fields=["is_active"], name="idx_survey_active"),
        ]

    def __str__(self):
        return f"survey#{self.pk}:{self.title}"

    # ---- Derived state -----------------------------------------------------------

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or timezone.now()) > self.expiry_date

    def count_responses(self) -> int:
        """Total responses; prefers the ``response_count`` annotation from list queries."""
        annotated = self.__dict__.get("response_count")
        if annotated is not None:
            return annotated
        return self.responses.count()

    def can_accept_responses(self, now: Optional[datetime] = None) -> bool:
        if not self.is_active or self.is_expired(now):
            return False
        return self.max_responses is None or self.count_responses() < self.max_responses

    # ---- Responses ---------------------------------------------------------------

    def get_user_response(self, user):
        target = canonical_id(user)
        for response in self.responses.all():
            if canonical_id(response.user_id) == target:
                return response
        return None

    def has_user_responded(self, user) -> bool:
        return self.get_user_response(user) is not None

    def add_response(self, user, content: str, now: Optional[datetime] = None):
        """
        Append ``user``'s response after the lifecycle checks pass.

        The unique (survey, user) constraint is the last line against a
        concurrent duplicate that raced past ``has_user_responded``.
        """
        text = clean_content(content)
        check_can_submit(self, user, now=now)
        stamp = now or timezone.now()
        owner = {"user": user} if hasattr(user, "pk") else {"user_id": canonical_id(user)}
        try:
            with transaction.atomic():
                response = self.responses.create(content=text, created_at=stamp, updated_at=stamp, **owner)
        except IntegrityError:
            raise DuplicateResponse()
        self._forget_prefetched_responses()
        return response

    def update_user_response(self, user, content: str, now: Optional[datetime] = None) -> bool:
        response = self.get_user_response(user)
        if response is None:
            return False
        stamp = now or timezone.now()
        # updated_at must move forward even on coarse clocks
        if stamp <= response.updated_at:
            stamp = response.updated_at + timedelta(microseconds=1)
        response.content = clean_content(content)
        response.updated_at = stamp
        response.save(update_fields=["content", "updated_at"])
        return True

    def remove_user_response(self, user) -> bool:
        response = self.get_user_response(user)
        if response is None:
            return False
        response.delete()
        self._forget_prefetched_responses()
        return True

    def _forget_prefetched_responses(self) -> None:
        getattr(self, "_prefetched_objects_cache", {}).pop("responses", None)

    # ---- Lifecycle ---------------------------------------------------------------

    def close(self) -> None:
        if not self.is_active:
            raise AlreadyClosed()
        self.is_active = False
        self.save(update_fields=["is_active", "updated_at"])

    # ---- Summary -----------------------------------------------------------------

    @property
    def summary(self) -> Optional[Summary]:
        if self.summary_generated_at is None:
            return None
        return Summary(
            content=self.summary_content or "",
            is_visible=self.summary_is_visible,
            generated_at=self.summary_generated_at,
        )

    def set_summary(self, content: str, now: Optional[datetime] = None) -> Summary:
        """Store a freshly generated summary; every regeneration starts private."""
        self.summary_content = content
        self.summary_is_visible = False
        self.summary_generated_at = now or timezone.now()
        self.save(update_fields=["summary_content", "summary_is_visible", "summary_generated_at", "updated_at"])
        return self.summary

    def set_summary_visibility(self, is_visible: bool) -> Summary:
        if self.summary is None:
            raise NoSummary()
        self.summary_is_visible = bool(is_visible)
        self.save(update_fields=["summary_is_visible", "updated_at"])
        return self.summary


# Register audit logging for survey models
auditlog.register(Survey)
