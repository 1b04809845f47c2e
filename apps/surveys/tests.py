from datetime import timedelta

from django.contrib.auth.models import User
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.responses.models import SurveyResponse
from apps.surveys.models import Survey


def make_survey(creator, **overrides):
    fields = {
        "title": "Remote work",
        "area": "HR",
        "description": "How do you feel about remote work?",
        "question": "Describe your ideal week.",
        "permitted_domains": ["work"],
        "permitted_responses": "Anything about working habits.",
        "summary_instructions": "Group by sentiment.",
        "expiry_date": timezone.now() + timedelta(days=7),
    }
    fields.update(overrides)
    return Survey.objects.create(creator=creator, **fields)


class SurveysApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.creator = User.objects.create_user(username="creator", password="pass1234")
        self.respondent = User.objects.create_user(username="resp", password="pass1234")
        self.other = User.objects.create_user(username="other", password="pass1234")
        self.client.force_authenticate(user=self.creator)
        self.survey = make_survey(self.creator)

    def create_payload(self, **overrides):
        data = {
            "title": "Commute",
            "area": "Transport",
            "description": "Daily commute habits",
            "guidelines": {
                "question": "How do you get to work?",
                "permitted_domains": ["travel", "work", "travel"],
                "permitted_responses": "Modes of transport only.",
                "summary_instructions": "Count by mode.",
            },
            "expiry_date": (timezone.now() + timedelta(days=3)).isoformat(),
            "max_responses": 5,
        }
        data.update(overrides)
        return data

    def test_create_survey(self):
        resp = self.client.post("/api/v1/surveys/", self.create_payload(), format="json")
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["creator"]["id"], self.creator.id)
        self.assertEqual(body["role"], "creator")
        self.assertEqual(body["guidelines"]["permitted_domains"], ["travel", "work"])
        self.assertEqual(body["response_count"], 0)
        self.assertIsNone(body["summary"])
        self.assertTrue(body["accepting_responses"])

    def test_create_defaults_capacity(self):
        payload = self.create_payload()
        payload.pop("max_responses")
        resp = self.client.post("/api/v1/surveys/", payload, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["max_responses"], 100)

    def test_create_rejects_past_expiry(self):
        payload = self.create_payload(expiry_date=(timezone.now() - timedelta(hours=1)).isoformat())
        resp = self.client.post("/api/v1/surveys/", payload, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")
        self.assertIn("expiry_date", resp.json()["error"]["details"])

    def test_create_rejects_empty_domains(self):
        payload = self.create_payload()
        payload["guidelines"]["permitted_domains"] = []
        resp = self.client.post("/api/v1/surveys/", payload, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_create_rejects_too_many_domains(self):
        payload = self.create_payload()
        payload["guidelines"]["permitted_domains"] = [f"domain-{i}" for i in range(11)]
        resp = self.client.post("/api/v1/surveys/", payload, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    def test_create_rejects_long_domain(self):
        payload = self.create_payload()
        payload["guidelines"]["permitted_domains"] = ["d" * 31]
        resp = self.client.post("/api/v1/surveys/", payload, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(Survey.objects.filter(title="Commute").exists())

    def test_create_requires_title(self):
        payload = self.create_payload()
        payload.pop("title")
        resp = self.client.post("/api/v1/surveys/", payload, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("title", resp.json()["error"]["details"])

    def test_create_requires_auth(self):
        self.client.force_authenticate(user=None)
        resp = self.client.post("/api/v1/surveys/", self.create_payload(), format="json")
        self.assertEqual(resp.status_code, 401)

    def test_list_is_public_and_hides_responses(self):
        SurveyResponse.objects.create(survey=self.survey, user=self.respondent, content="hello")
        self.client.force_authenticate(user=None)
        resp = self.client.get("/api/v1/surveys/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["count"], 1)
        item = body["results"][0]
        self.assertEqual(item["response_count"], 1)
        self.assertNotIn("responses", item)

    def test_list_filters(self):
        make_survey(self.other, title="Lunch menu", area="Facilities")
        make_survey(self.other, title="Old poll", is_active=False)

        resp = self.client.get("/api/v1/surveys/", {"search": "lunch"})
        self.assertEqual([s["title"] for s in resp.json()["results"]], ["Lunch menu"])

        resp = self.client.get("/api/v1/surveys/", {"mine": "true"})
        self.assertEqual([s["id"] for s in resp.json()["results"]], [self.survey.id])

        resp = self.client.get("/api/v1/surveys/", {"open": "true"})
        self.assertNotIn("Old poll", [s["title"] for s in resp.json()["results"]])

    def test_mine_for_anonymous_is_empty(self):
        make_survey(self.other, title="Lunch menu")
        self.client.force_authenticate(user=None)
        resp = self.client.get("/api/v1/surveys/", {"mine": "true"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"count": 0, "results": []})

    def test_list_full_survey_not_accepting(self):
        full = make_survey(self.other, title="Tiny poll", max_responses=1)
        SurveyResponse.objects.create(survey=full, user=self.respondent, content="first")
        resp = self.client.get("/api/v1/surveys/")
        by_title = {s["title"]: s for s in resp.json()["results"]}
        self.assertFalse(by_title["Tiny poll"]["accepting_responses"])
        self.assertTrue(by_title["Remote work"]["accepting_responses"])

        resp = self.client.get("/api/v1/surveys/", {"open": "true"})
        self.assertNotIn("Tiny poll", [s["title"] for s in resp.json()["results"]])

    def test_list_pagination(self):
        for i in range(3):
            make_survey(self.other, title=f"Extra {i}")
        resp = self.client.get("/api/v1/surveys/", {"page": 2, "page_size": 3})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["count"], 4)
        self.assertEqual([s["id"] for s in resp.json()["results"]], [self.survey.id])

        resp = self.client.get("/api/v1/surveys/", {"page_size": 500})
        self.assertEqual(resp.status_code, 400)

    def test_detail_redacted_for_respondent(self):
        SurveyResponse.objects.create(survey=self.survey, user=self.respondent, content="mine")
        SurveyResponse.objects.create(survey=self.survey, user=self.other, content="theirs")
        self.survey.set_summary("private summary")

        self.client.force_authenticate(user=self.respondent)
        resp = self.client.get(f"/api/v1/surveys/{self.survey.id}/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["role"], "respondent")
        self.assertEqual(body["response_count"], 2)
        self.assertEqual([r["content"] for r in body["responses"]], ["mine"])
        self.assertIsNone(body["summary"])

    def test_detail_creator_sees_everything(self):
        SurveyResponse.objects.create(survey=self.survey, user=self.respondent, content="mine")
        SurveyResponse.objects.create(survey=self.survey, user=self.other, content="theirs")
        self.survey.set_summary("private summary")

        resp = self.client.get(f"/api/v1/surveys/{self.survey.id}/")
        body = resp.json()
        self.assertEqual(len(body["responses"]), 2)
        self.assertEqual(body["summary"]["content"], "private summary")
        self.assertFalse(body["summary"]["is_visible"])

    def test_detail_unknown_survey(self):
        resp = self.client.get("/api/v1/surveys/999999/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"]["code"], "SURVEY_NOT_FOUND")

    def test_update_by_creator(self):
        resp = self.client.patch(f"/api/v1/surveys/{self.survey.id}/", {"title": "Hybrid work"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["title"], "Hybrid work")
        self.survey.refresh_from_db()
        self.assertEqual(self.survey.creator_id, self.creator.id)

    def test_update_requires_creator(self):
        self.client.force_authenticate(user=self.other)
        resp = self.client.patch(f"/api/v1/surveys/{self.survey.id}/", {"title": "Mine now"}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"]["code"], "NOT_CREATOR")

    def test_update_closed_survey_rejected(self):
        self.survey.close()
        resp = self.client.patch(f"/api/v1/surveys/{self.survey.id}/", {"title": "Again"}, format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "SURVEY_CLOSED")

    def test_update_capacity_below_count_rejected(self):
        SurveyResponse.objects.create(survey=self.survey, user=self.respondent, content="a")
        SurveyResponse.objects.create(survey=self.survey, user=self.other, content="b")
        resp = self.client.patch(f"/api/v1/surveys/{self.survey.id}/", {"max_responses": 1}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("max_responses", resp.json()["error"]["details"])

    def test_close_then_close_again(self):
        resp = self.client.post(f"/api/v1/surveys/{self.survey.id}/close/")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["is_active"])
        self.assertFalse(resp.json()["accepting_responses"])

        resp = self.client.post(f"/api/v1/surveys/{self.survey.id}/close/")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "ALREADY_CLOSED")

    def test_close_requires_creator(self):
        self.client.force_authenticate(user=self.other)
        resp = self.client.post(f"/api/v1/surveys/{self.survey.id}/close/")
        self.assertEqual(resp.status_code, 403)
        self.survey.refresh_from_db()
        self.assertTrue(self.survey.is_active)

    def test_delete_survey(self):
        SurveyResponse.objects.create(survey=self.survey, user=self.respondent, content="a")
        resp = self.client.delete(f"/api/v1/surveys/{self.survey.id}/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"id": self.survey.id, "deleted": True})
        self.assertFalse(Survey.objects.filter(pk=self.survey.id).exists())
        self.assertFalse(SurveyResponse.objects.filter(survey_id=self.survey.id).exists())

    def test_delete_requires_creator(self):
        self.client.force_authenticate(user=self.respondent)
        resp = self.client.delete(f"/api/v1/surveys/{self.survey.id}/")
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(Survey.objects.filter(pk=self.survey.id).exists())

    def test_summary_visibility_without_summary(self):
        url = f"/api/v1/surveys/{self.survey.id}/summary/visibility/"
        resp = self.client.patch(url, {"is_visible": True}, format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "NO_SUMMARY")

    def test_summary_visibility_toggle(self):
        self.survey.set_summary("the gist")
        url = f"/api/v1/surveys/{self.survey.id}/summary/visibility/"
        resp = self.client.patch(url, {"is_visible": True}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["is_visible"])
        self.assertEqual(resp.json()["content"], "the gist")

        self.client.force_authenticate(user=self.other)
        body = self.client.get(f"/api/v1/surveys/{self.survey.id}/").json()
        self.assertEqual(body["summary"]["content"], "the gist")
        self.assertEqual(body["role"], "other")


class SurveyModelTests(TestCase):
    def setUp(self):
        self.creator = User.objects.create_user(username="creator", password="pass1234")
        self.survey = make_survey(self.creator, max_responses=1)

    def test_close_disables_acceptance(self):
        self.assertTrue(self.survey.can_accept_responses())
        self.survey.close()
        self.assertFalse(self.survey.can_accept_responses())

    def test_full_survey_not_accepting(self):
        user = User.objects.create_user(username="r1", password="pass1234")
        self.survey.add_response(user, "only one")
        self.assertFalse(self.survey.can_accept_responses())

    def test_regenerated_summary_is_private(self):
        self.survey.set_summary("first")
        self.survey.set_summary_visibility(True)
        summary = self.survey.set_summary("second")
        self.assertEqual(summary.content, "second")
        self.assertFalse(summary.is_visible)
