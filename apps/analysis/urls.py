from django.urls import path
from .views import (
    ResponseValidateAllView, ResponseValidateView, SurveySearchView, SurveySummaryView,
)

urlpatterns = [
    path("search/", SurveySearchView.as_view(), name="survey-search"),
    path("<int:survey_id>/responses/validate/", ResponseValidateAllView.as_view(), name="response-validate-all"),
    path(
        "<int:survey_id>/responses/<int:response_id>/validate/",
        ResponseValidateView.as_view(),
        name="response-validate",
    ),
    path("<int:survey_id>/summary/", SurveySummaryView.as_view(), name="survey-summary"),
]
