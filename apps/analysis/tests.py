from unittest import mock

from django.apps import apps
from django.contrib.auth.models import User
from django.test import TestCase
from rest_framework.test import APIClient

from apps.analysis.clients import (
    AnalysisClient,
    AnalysisClientError,
    SearchMatch,
    StubAnalysisClient,
    ValidationResult,
    build_client,
)
from apps.analysis.services import AnalysisOrchestrator
from apps.analysis.tasks import generate_summary_task
from apps.core.exceptions import AnalysisUnavailable, NoResponses
from apps.responses.models import SurveyResponse
from apps.surveys.models import Survey
from apps.surveys.tests import make_survey


class RecordingClient(AnalysisClient):
    """Scripted collaborator that records every call."""

    def __init__(self, matches=None, summary="scripted summary"):
        self.matches = matches or []
        self.summary = summary
        self.calls = []

    def search(self, query, corpus):
        self.calls.append(("search", query, corpus))
        return self.matches

    def validate(self, rubric, text):
        self.calls.append(("validate", rubric, text))
        return ValidationResult(is_valid="spam" not in text, feedback="off topic" if "spam" in text else "ok")

    def summarize(self, responses, instructions):
        self.calls.append(("summarize", responses, instructions))
        return self.summary


class FailingClient(AnalysisClient):
    def search(self, query, corpus):
        raise AnalysisClientError("timeout")

    def validate(self, rubric, text):
        raise AnalysisClientError("timeout")

    def summarize(self, responses, instructions):
        raise AnalysisClientError("timeout")


def use_client(client):
    return mock.patch.object(apps.get_app_config("analysis"), "client", client)


class AnalysisOrchestratorTests(TestCase):
    def setUp(self):
        self.creator = User.objects.create_user(username="creator", password="pass1234")
        self.user = User.objects.create_user(username="resp", password="pass1234")
        self.survey = make_survey(self.creator, title="Python tooling", area="Engineering")

    def test_blank_query_skips_collaborator(self):
        client = RecordingClient()
        self.assertEqual(AnalysisOrchestrator(client).search("   ", Survey.objects.all()), [])
        self.assertEqual(client.calls, [])

    def test_empty_corpus_skips_collaborator(self):
        client = RecordingClient()
        self.assertEqual(AnalysisOrchestrator(client).search("python", Survey.objects.none()), [])
        self.assertEqual(client.calls, [])

    def test_search_projection_and_unknown_ids(self):
        SurveyResponse.objects.create(survey=self.survey, user=self.user, content="secret answer")
        client = RecordingClient(matches=[
            SearchMatch(survey_id="999999", reason="ghost"),
            SearchMatch(survey_id=str(self.survey.pk), reason="about python"),
            SearchMatch(survey_id=str(self.survey.pk), reason="again"),
        ])
        ranked = AnalysisOrchestrator(client).search("python", Survey.objects.all())
        self.assertEqual(ranked, [(self.survey, "about python")])

        _, query, corpus = client.calls[0]
        self.assertEqual(query, "python")
        self.assertEqual(set(corpus[0]), {"id", "title", "area", "description"})
        self.assertNotIn("secret answer", str(corpus))

    def test_search_failure_is_unavailable(self):
        with self.assertRaises(AnalysisUnavailable):
            AnalysisOrchestrator(FailingClient()).search("python", Survey.objects.all())

    def test_no_responses_leaves_summary_absent(self):
        client = RecordingClient()
        with self.assertRaises(NoResponses):
            AnalysisOrchestrator(client).generate_summary(self.survey.id, self.creator)
        self.survey.refresh_from_db()
        self.assertIsNone(self.survey.summary)
        self.assertEqual(client.calls, [])

    def test_summary_uses_instructions(self):
        self.survey.add_response(self.user, "tabs over spaces")
        client = RecordingClient()
        summary = AnalysisOrchestrator(client).generate_summary(self.survey.id, self.creator)
        self.assertEqual(summary.content, "scripted summary")
        self.assertEqual(client.calls, [("summarize", ["tabs over spaces"], "Group by sentiment.")])

    def test_failed_summary_keeps_previous(self):
        self.survey.add_response(self.user, "tabs over spaces")
        self.survey.set_summary("old summary")
        with self.assertRaises(AnalysisUnavailable):
            AnalysisOrchestrator(FailingClient()).generate_summary(self.survey.id, self.creator)
        self.survey.refresh_from_db()
        self.assertEqual(self.survey.summary.content, "old summary")


class StubClientTests(TestCase):
    def setUp(self):
        self.stub = StubAnalysisClient()

    def test_search_reports_matching_fields(self):
        corpus = [
            {"id": "1", "title": "Python tooling", "area": "python", "description": ""},
            {"id": "2", "title": "Lunch", "area": "Facilities", "description": ""},
        ]
        matches = self.stub.search("Python", corpus)
        self.assertEqual(matches, [SearchMatch(survey_id="1", reason="Matches search query in title and area")])

    def test_validate_and_summarize(self):
        self.assertFalse(self.stub.validate("anything", "this is INVALID").is_valid)
        self.assertTrue(self.stub.validate("anything", "fine").is_valid)
        text = self.stub.summarize(["a", "b"], "be brief")
        self.assertTrue(text.startswith("Summary of 2 responses:"))

    def test_build_client_rejects_other_types(self):
        self.assertIsInstance(build_client("apps.analysis.clients.StubAnalysisClient"), StubAnalysisClient)
        with self.assertRaises(TypeError):
            build_client("apps.analysis.clients.SearchMatch", survey_id="1", reason="x")


class AnalysisApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.creator = User.objects.create_user(username="creator", password="pass1234")
        self.user = User.objects.create_user(username="resp", password="pass1234")
        self.other = User.objects.create_user(username="other", password="pass1234")
        self.survey = make_survey(self.creator, title="Python tooling", area="Engineering")
        self.client.force_authenticate(user=self.creator)

    def test_search_is_public(self):
        make_survey(self.creator, title="Lunch menu", area="Facilities")
        self.client.force_authenticate(user=None)
        with use_client(StubAnalysisClient()):
            resp = self.client.post("/api/v1/surveys/search/", {"query": "python"}, format="json")
        self.assertEqual(resp.status_code, 200)
        matches = resp.json()["matches"]
        self.assertEqual([m["survey"]["id"] for m in matches], [self.survey.id])
        self.assertEqual(matches[0]["reason"], "Matches search query in title")
        self.assertNotIn("responses", matches[0]["survey"])

    def test_search_without_matches(self):
        with use_client(StubAnalysisClient()):
            resp = self.client.post("/api/v1/surveys/search/", {"query": "astronomy"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"matches": []})

    def test_search_requires_query(self):
        for body in ({}, {"query": "   "}):
            resp = self.client.post("/api/v1/surveys/search/", body, format="json")
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()["error"]["code"], "MISSING_QUERY")

    def test_search_collaborator_down(self):
        with use_client(FailingClient()):
            resp = self.client.post("/api/v1/surveys/search/", {"query": "python"}, format="json")
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["error"]["code"], "ANALYSIS_UNAVAILABLE")

    def test_validate_one(self):
        response = self.survey.add_response(self.user, "buy spam now")
        with use_client(RecordingClient()):
            resp = self.client.get(f"/api/v1/surveys/{self.survey.id}/responses/{response.id}/validate/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"response_id": response.id, "is_valid": False, "feedback": "off topic"})

    def test_validate_one_missing_response(self):
        with use_client(RecordingClient()):
            resp = self.client.get(f"/api/v1/surveys/{self.survey.id}/responses/999999/validate/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"]["code"], "RESPONSE_NOT_FOUND")

    def test_validate_requires_creator(self):
        response = self.survey.add_response(self.user, "fine")
        self.client.force_authenticate(user=self.user)
        with use_client(RecordingClient()):
            resp = self.client.get(f"/api/v1/surveys/{self.survey.id}/responses/{response.id}/validate/")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"]["code"], "NOT_CREATOR")

    def test_validate_all_returns_only_invalid(self):
        self.survey.add_response(self.user, "pytest all the way")
        bad = self.survey.add_response(self.other, "spam spam spam")
        with use_client(RecordingClient()):
            resp = self.client.get(f"/api/v1/surveys/{self.survey.id}/responses/validate/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {
            "checked": 2,
            "invalid": [{"response_id": bad.id, "user_id": self.other.id, "reason": "off topic"}],
        })

    def test_summary_no_responses(self):
        with use_client(RecordingClient()):
            resp = self.client.post(f"/api/v1/surveys/{self.survey.id}/summary/", {}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "NO_RESPONSES")
        self.survey.refresh_from_db()
        self.assertIsNone(self.survey.summary)

    def test_regenerating_summary_resets_visibility(self):
        self.survey.add_response(self.user, "pytest all the way")
        url = f"/api/v1/surveys/{self.survey.id}/summary/"
        with use_client(RecordingClient(summary="v1")):
            resp = self.client.post(url, {}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["content"], "v1")
        self.assertFalse(resp.json()["is_visible"])

        self.client.patch(f"{url}visibility/", {"is_visible": True}, format="json")
        with use_client(RecordingClient(summary="v2")):
            resp = self.client.post(url, {}, format="json")
        self.assertEqual(resp.json()["content"], "v2")
        self.assertFalse(resp.json()["is_visible"])

    def test_summary_requires_creator(self):
        self.survey.add_response(self.user, "pytest all the way")
        self.client.force_authenticate(user=self.user)
        with use_client(RecordingClient()):
            resp = self.client.post(f"/api/v1/surveys/{self.survey.id}/summary/", {}, format="json")
        self.assertEqual(resp.status_code, 403)

    def test_summary_collaborator_down(self):
        self.survey.add_response(self.user, "pytest all the way")
        with use_client(FailingClient()):
            resp = self.client.post(f"/api/v1/surveys/{self.survey.id}/summary/", {}, format="json")
        self.assertEqual(resp.status_code, 503)
        self.survey.refresh_from_db()
        self.assertIsNone(self.survey.summary)

    def test_background_summary_is_queued(self):
        url = f"/api/v1/surveys/{self.survey.id}/summary/"
        with mock.patch("apps.analysis.views.generate_summary_task.delay") as delay:
            resp = self.client.post(url, {"background": True}, format="json")
        self.assertEqual(resp.status_code, 202)
        self.assertEqual(resp.json(), {"survey_id": self.survey.id, "queued": True})
        delay.assert_called_once_with(self.survey.id, self.creator.id)

    def test_background_summary_requires_creator(self):
        self.client.force_authenticate(user=self.other)
        with mock.patch("apps.analysis.views.generate_summary_task.delay") as delay:
            resp = self.client.post(f"/api/v1/surveys/{self.survey.id}/summary/", {"background": True}, format="json")
        self.assertEqual(resp.status_code, 403)
        delay.assert_not_called()

    def test_summary_task_stores_private_summary(self):
        self.survey.add_response(self.user, "pytest all the way")
        with use_client(RecordingClient(summary="from the worker")):
            result = generate_summary_task(self.survey.id, self.creator.id)
        self.assertEqual(result["survey_id"], self.survey.id)
        self.survey.refresh_from_db()
        self.assertEqual(self.survey.summary.content, "from the worker")
        self.assertFalse(self.survey.summary.is_visible)
