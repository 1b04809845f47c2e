from django.contrib.auth.models import User
from django.test import TestCase, override_settings
from rest_framework.test import APIClient


@override_settings(REGISTRATION_SECRET="open-sesame")
class AccountsApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="acct", email="acct@example.com", password="pass1234")

    def payload(self, **overrides):
        data = {
            "username": "newbie",
            "email": "newbie@example.com",
            "password": "s3cret!",
            "registration_code": "open-sesame",
        }
        data.update(overrides)
        return data

    def test_register_with_valid_code(self):
        resp = self.client.post("/api/v1/register/", self.payload(), format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["username"], "newbie")
        self.assertTrue(User.objects.get(username="newbie").check_password("s3cret!"))

    def test_register_rejects_wrong_code(self):
        resp = self.client.post("/api/v1/register/", self.payload(registration_code="nope"), format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"]["code"], "INVALID_REGISTRATION_CODE")
        self.assertFalse(User.objects.filter(username="newbie").exists())

    def test_register_rejects_existing_user(self):
        resp = self.client.post("/api/v1/register/", self.payload(username="ACCT"), format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("username", resp.json()["error"]["details"])

    def test_register_rejects_short_password(self):
        resp = self.client.post("/api/v1/register/", self.payload(password="abc"), format="json")
        self.assertEqual(resp.status_code, 400)

    def test_me_requires_auth(self):
        resp = self.client.get("/api/v1/me/")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"]["code"], "NOT_AUTHENTICATED")

    def test_me_returns_basic_info(self):
        self.client.force_authenticate(user=self.user)
        resp = self.client.get("/api/v1/me/")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data.get("username"), "acct")
        self.assertEqual(data.get("email"), "acct@example.com")
