from django.urls import path
from .views import SurveyResponseListCreateView, SurveyResponseDetailView

urlpatterns = [
    path("<int:survey_id>/responses/", SurveyResponseListCreateView.as_view(), name="response-list-create"),
    path("<int:survey_id>/responses/<int:response_id>/", SurveyResponseDetailView.as_view(), name="response-detail"),
]
