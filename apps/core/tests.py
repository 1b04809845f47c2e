from django.core.exceptions import ObjectDoesNotExist
from django.http import Http404
from django.test import TestCase
from rest_framework.exceptions import NotAuthenticated, ValidationError

from apps.core.exceptions import (
    AnalysisUnavailable,
    CapacityExceeded,
    NotCreator,
    custom_exception_handler,
)
from apps.core.utility import canonical_id


class ExceptionHandlerTests(TestCase):
    def handle(self, exc):
        return custom_exception_handler(exc, {"view": None})

    def test_domain_error_keeps_status_and_code(self):
        resp = self.handle(CapacityExceeded())
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["error"]["code"], "CAPACITY_EXCEEDED")
        self.assertEqual(resp.data["error"]["message"], "Maximum number of responses reached.")

    def test_custom_message_keeps_code(self):
        resp = self.handle(NotCreator("Only the survey creator can close the survey."))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["error"]["code"], "NOT_CREATOR")
        self.assertIn("close the survey", resp.data["error"]["message"])

    def test_validation_error_has_details(self):
        resp = self.handle(ValidationError({"title": ["This field is required."]}))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["error"]["code"], "VALIDATION_ERROR")
        self.assertIn("title", resp.data["error"]["details"])

    def test_builtin_errors_mapped(self):
        self.assertEqual(self.handle(NotAuthenticated()).data["error"]["code"], "NOT_AUTHENTICATED")
        resp = self.handle(Http404())
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["error"]["code"], "NOT_FOUND")

    def test_object_does_not_exist_is_404(self):
        resp = self.handle(ObjectDoesNotExist())
        self.assertEqual(resp.status_code, 404)

    def test_unexpected_error_is_500(self):
        with self.assertLogs("apps.core.exceptions", level="ERROR"):
            resp = self.handle(RuntimeError("boom"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.data["error"]["code"], "INTERNAL_ERROR")

    def test_analysis_unavailable_is_503(self):
        resp = self.handle(AnalysisUnavailable())
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.data["error"]["code"], "ANALYSIS_UNAVAILABLE")


class UtilityTests(TestCase):
    def test_canonical_id_forms_agree(self):
        self.assertEqual(canonical_id(7), canonical_id("7"))
        self.assertEqual(canonical_id(" 7 "), "7")

    def test_canonical_id_requires_value(self):
        with self.assertRaises(ValueError):
            canonical_id(None)
