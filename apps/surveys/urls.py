from django.urls import path
from .views import (
    SurveyListCreateView, SurveyDetailView, SurveyCloseView, SummaryVisibilityView,
)

urlpatterns = [
    path("", SurveyListCreateView.as_view(), name="survey-list-create"),
    path("<int:survey_id>/", SurveyDetailView.as_view(), name="survey-detail"),
    path("<int:survey_id>/close/", SurveyCloseView.as_view(), name="survey-close"),
    path("<int:survey_id>/summary/visibility/", SummaryVisibilityView.as_view(), name="summary-visibility"),
]
