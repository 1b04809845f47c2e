from datetime import timedelta
from unittest import mock

from django.contrib.auth.models import User
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.core.exceptions import (
    CapacityExceeded,
    DuplicateResponse,
    SurveyExpired,
    SurveyInactive,
    SurveyNotFound,
    Unauthorized,
)
from apps.responses.models import SurveyResponse
from apps.responses.policies import check_can_delete, check_can_submit, check_can_update
from apps.surveys.models import Survey
from apps.surveys.tests import make_survey


class SurveyResponsesApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.creator = User.objects.create_user(username="creator", password="pass1234")
        self.respondent = User.objects.create_user(username="resp", password="pass1234")
        self.other = User.objects.create_user(username="other", password="pass1234")
        self.survey = make_survey(self.creator, max_responses=2)
        self.url = f"/api/v1/surveys/{self.survey.id}/responses/"
        self.client.force_authenticate(user=self.respondent)

    def submit(self, user, content="I like it"):
        self.client.force_authenticate(user=user)
        return self.client.post(self.url, {"content": content}, format="json")

    def test_submit_success(self):
        resp = self.submit(self.respondent, "  Fridays off please  ")
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["content"], "Fridays off please")
        self.assertEqual(body["user"]["id"], self.respondent.id)
        self.assertEqual(self.survey.responses.count(), 1)

    def test_submit_blank_content_rejected(self):
        resp = self.submit(self.respondent, "   ")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.survey.responses.count(), 0)

    def test_submit_too_long_content_rejected(self):
        resp = self.submit(self.respondent, "x" * 2001)
        self.assertEqual(resp.status_code, 400)
        self.assertIn("content", resp.json()["error"]["details"])
        self.assertEqual(self.survey.responses.count(), 0)

    def test_submit_length_counted_after_trim(self):
        resp = self.submit(self.respondent, "   " + "x" * 2000 + "   ")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(len(resp.json()["content"]), 2000)

    def test_submit_unknown_survey(self):
        resp = self.client.post("/api/v1/surveys/999999/responses/", {"content": "x"}, format="json")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"]["code"], "SURVEY_NOT_FOUND")

    def test_duplicate_submission_rejected(self):
        self.assertEqual(self.submit(self.respondent).status_code, 201)
        resp = self.submit(self.respondent, "second try")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "DUPLICATE_RESPONSE")
        self.assertEqual(self.survey.responses.count(), 1)

    def test_submit_inactive_survey_blocked(self):
        self.survey.close()
        resp = self.submit(self.respondent)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "SURVEY_INACTIVE")

    def test_submit_expired_survey_blocked(self):
        Survey.objects.filter(pk=self.survey.pk).update(expiry_date=timezone.now() - timedelta(minutes=1))
        resp = self.submit(self.respondent)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "SURVEY_EXPIRED")

    def test_capacity_is_never_exceeded(self):
        self.assertEqual(self.submit(self.respondent).status_code, 201)
        self.assertEqual(self.submit(self.other).status_code, 201)
        resp = self.submit(self.creator)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "CAPACITY_EXCEEDED")
        self.assertEqual(self.survey.responses.count(), 2)

    def test_capacity_reported_before_expiry(self):
        self.submit(self.respondent)
        self.submit(self.other)
        Survey.objects.filter(pk=self.survey.pk).update(expiry_date=timezone.now() - timedelta(minutes=1))
        resp = self.submit(self.creator)
        self.assertEqual(resp.json()["error"]["code"], "CAPACITY_EXCEEDED")

    def test_list_is_creator_only(self):
        self.submit(self.respondent)
        self.submit(self.other)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"]["code"], "NOT_CREATOR")

        self.client.force_authenticate(user=self.creator)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["count"], 2)

    def test_detail_visible_to_author_and_creator_only(self):
        rid = self.submit(self.respondent).json()["id"]
        detail = f"{self.url}{rid}/"

        self.assertEqual(self.client.get(detail).status_code, 200)
        self.client.force_authenticate(user=self.creator)
        self.assertEqual(self.client.get(detail).status_code, 200)
        self.client.force_authenticate(user=self.other)
        resp = self.client.get(detail)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"]["code"], "UNAUTHORIZED")

    def test_update_own_response(self):
        created = self.submit(self.respondent, "first").json()
        resp = self.client.patch(f"{self.url}{created['id']}/", {"content": "second"}, format="json")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["content"], "second")
        self.assertEqual(body["created_at"], created["created_at"])
        self.assertGreater(
            SurveyResponse.objects.get(pk=created["id"]).updated_at,
            SurveyResponse.objects.get(pk=created["id"]).created_at,
        )

    def test_update_by_other_user_rejected(self):
        rid = self.submit(self.respondent).json()["id"]
        self.client.force_authenticate(user=self.creator)
        resp = self.client.patch(f"{self.url}{rid}/", {"content": "edited"}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"]["code"], "UNAUTHORIZED")
        self.assertEqual(SurveyResponse.objects.get(pk=rid).content, "I like it")

    def test_update_missing_response(self):
        resp = self.client.patch(f"{self.url}999999/", {"content": "edited"}, format="json")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"]["code"], "RESPONSE_NOT_FOUND")

    def test_delete_by_author(self):
        rid = self.submit(self.respondent).json()["id"]
        resp = self.client.delete(f"{self.url}{rid}/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"id": rid, "deleted": True})
        self.assertFalse(SurveyResponse.objects.filter(pk=rid).exists())

    def test_delete_by_creator(self):
        rid = self.submit(self.respondent).json()["id"]
        self.client.force_authenticate(user=self.creator)
        self.assertEqual(self.client.delete(f"{self.url}{rid}/").status_code, 200)
        self.assertEqual(self.survey.responses.count(), 0)

    def test_delete_by_stranger_rejected(self):
        rid = self.submit(self.respondent).json()["id"]
        self.client.force_authenticate(user=self.other)
        resp = self.client.delete(f"{self.url}{rid}/")
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(SurveyResponse.objects.filter(pk=rid).exists())

    def test_delete_frees_capacity(self):
        rid = self.submit(self.respondent).json()["id"]
        self.submit(self.other)
        self.client.force_authenticate(user=self.respondent)
        self.client.delete(f"{self.url}{rid}/")
        self.assertEqual(self.submit(self.creator).status_code, 201)


class SurveyAggregateTests(TestCase):
    def setUp(self):
        self.creator = User.objects.create_user(username="creator", password="pass1234")
        self.user = User.objects.create_user(username="resp", password="pass1234")
        self.survey = make_survey(self.creator)

    def test_concurrent_duplicate_caught_by_constraint(self):
        self.survey.add_response(self.user, "first")
        survey = Survey.objects.get(pk=self.survey.pk)
        # simulate a second writer that passed the duplicate check before the first committed
        with mock.patch.object(Survey, "has_user_responded", return_value=False):
            with self.assertRaises(DuplicateResponse):
                survey.add_response(self.user, "second")
        self.assertEqual(self.survey.responses.count(), 1)

    def test_lookup_accepts_any_id_form(self):
        response = self.survey.add_response(self.user, "hello")
        self.assertEqual(self.survey.get_user_response(self.user.pk), response)
        self.assertEqual(self.survey.get_user_response(str(self.user.pk)), response)
        self.assertTrue(self.survey.has_user_responded(self.user))

    def test_update_moves_updated_at_forward(self):
        response = self.survey.add_response(self.user, "hello")
        previous = response.updated_at
        # a clock that has not advanced must still produce a newer stamp
        self.assertTrue(self.survey.update_user_response(self.user, "hello again", now=previous))
        response.refresh_from_db()
        self.assertEqual(response.content, "hello again")
        self.assertGreater(response.updated_at, previous)
        self.assertEqual(response.created_at, previous)

    def test_update_and_remove_without_response(self):
        self.assertFalse(self.survey.update_user_response(self.user, "nothing"))
        self.assertFalse(self.survey.remove_user_response(self.user))

    def test_remove_response(self):
        self.survey.add_response(self.user, "bye")
        self.assertTrue(self.survey.remove_user_response(self.user))
        self.assertFalse(self.survey.has_user_responded(self.user))


class ResponsePolicyTests(TestCase):
    def setUp(self):
        self.creator = User.objects.create_user(username="creator", password="pass1234")
        self.user = User.objects.create_user(username="resp", password="pass1234")
        self.stranger = User.objects.create_user(username="stranger", password="pass1234")
        self.survey = make_survey(self.creator, max_responses=1)
        self.later = self.survey.expiry_date + timedelta(days=1)

    def test_missing_survey_first(self):
        with self.assertRaises(SurveyNotFound):
            check_can_submit(None, self.user)

    def test_inactive_before_capacity(self):
        self.survey.add_response(self.stranger, "full")
        self.survey.is_active = False
        with self.assertRaises(SurveyInactive):
            check_can_submit(self.survey, self.user, now=self.later)

    def test_capacity_before_expiry(self):
        self.survey.add_response(self.stranger, "full")
        with self.assertRaises(CapacityExceeded):
            check_can_submit(self.survey, self.user, now=self.later)

    def test_expiry_before_duplicate(self):
        self.survey.max_responses = None
        self.survey.add_response(self.user, "mine")
        with self.assertRaises(SurveyExpired):
            check_can_submit(self.survey, self.user, now=self.later)

    def test_update_requires_author(self):
        response = self.survey.add_response(self.user, "mine")
        check_can_update(self.survey, response, self.user)
        with self.assertRaises(Unauthorized):
            check_can_update(self.survey, response, self.creator)

    def test_update_blocked_after_expiry(self):
        response = self.survey.add_response(self.user, "mine")
        with self.assertRaises(SurveyExpired):
            check_can_update(self.survey, response, self.user, now=self.later)

    def test_delete_allows_creator(self):
        response = self.survey.add_response(self.user, "mine")
        check_can_delete(self.survey, response, self.creator)
        with self.assertRaises(Unauthorized):
            check_can_delete(self.survey, response, self.stranger)
