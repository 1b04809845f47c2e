from django.contrib import admin

from apps.responses.models import SurveyResponse
from .models import Survey


class SurveyResponseInline(admin.TabularInline):
    model = SurveyResponse
    extra = 0
    fields = ("user", "content", "created_at", "updated_at")
    readonly_fields = ("created_at", "updated_at")


@admin.register(Survey)
class SurveyAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "area", "creator", "is_active", "expiry_date", "max_responses", "created_at")
    list_filter = ("is_active",)
    search_fields = ("title", "area")
    inlines = [SurveyResponseInline]
