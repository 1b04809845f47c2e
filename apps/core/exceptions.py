"""
Error taxonomy for the survey API and the DRF exception handler rendering it.

Every business-rule violation is a typed ``APIException`` carrying a stable
machine-readable ``default_code``; the handler turns them (and DRF's own
exceptions) into ``{"error": {"code", "message", "details"?}}``.
"""
import logging

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# ---- Categories ------------------------------------------------------------------

class AuthorizationError(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to perform this action."
    default_code = "FORBIDDEN"


class StateConflictError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The survey is not in a state that allows this action."
    default_code = "STATE_CONFLICT"


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "NOT_FOUND"


class CollaboratorError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The analysis request could not be completed."
    default_code = "ANALYSIS_ERROR"


# ---- Authorization ---------------------------------------------------------------

class NotCreator(AuthorizationError):
    default_detail = "Only the survey creator can perform this action."
    default_code = "NOT_CREATOR"


class Unauthorized(AuthorizationError):
    default_detail = "You are not allowed to access this response."
    default_code = "UNAUTHORIZED"


class InvalidRegistrationCode(AuthorizationError):
    default_detail = "Invalid registration code."
    default_code = "INVALID_REGISTRATION_CODE"


# ---- State conflicts -------------------------------------------------------------

class SurveyClosed(StateConflictError):
    default_detail = "Cannot update a closed survey."
    default_code = "SURVEY_CLOSED"


class SurveyInactive(StateConflictError):
    default_detail = "Survey is not accepting responses."
    default_code = "SURVEY_INACTIVE"


class SurveyExpired(StateConflictError):
    default_detail = "Survey has expired."
    default_code = "SURVEY_EXPIRED"


class CapacityExceeded(StateConflictError):
    default_detail = "Maximum number of responses reached."
    default_code = "CAPACITY_EXCEEDED"


class DuplicateResponse(StateConflictError):
    default_detail = "You have already responded to this survey."
    default_code = "DUPLICATE_RESPONSE"


class AlreadyClosed(StateConflictError):
    default_detail = "Survey is already closed."
    default_code = "ALREADY_CLOSED"


class NoSummary(StateConflictError):
    default_detail = "Survey has no summary."
    default_code = "NO_SUMMARY"


# ---- Not found -------------------------------------------------------------------

class SurveyNotFound(NotFoundError):
    default_detail = "Survey not found."
    default_code = "SURVEY_NOT_FOUND"


class ResponseNotFound(NotFoundError):
    default_detail = "Response not found."
    default_code = "RESPONSE_NOT_FOUND"


# ---- Collaborator ----------------------------------------------------------------

class NoResponses(CollaboratorError):
    default_detail = "Survey has no responses to summarize."
    default_code = "NO_RESPONSES"


class AnalysisUnavailable(CollaboratorError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The text-analysis service is unavailable. Try again later."
    default_code = "ANALYSIS_UNAVAILABLE"


# ---- Input -----------------------------------------------------------------------

class MissingQuery(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "A search query is required."
    default_code = "MISSING_QUERY"


# DRF's own exceptions keep their status but get codes in our vocabulary.
_BUILTIN_CODES = (
    (NotAuthenticated, "NOT_AUTHENTICATED"),
    (AuthenticationFailed, "NOT_AUTHENTICATED"),
    (PermissionDenied, "PERMISSION_DENIED"),
    (NotFound, "NOT_FOUND"),
)


def _error_body(code, message, details=None):
    body = {"code": code, "message": message}
    if details is not None:
        body["details"] = details
    return {"error": body}


def _code_for(exc: APIException) -> str:
    for exc_cls, code in _BUILTIN_CODES:
        if isinstance(exc, exc_cls):
            return code
    code = getattr(exc.detail, "code", None) or exc.default_code
    return str(code).upper()


def custom_exception_handler(exc, context):
    if isinstance(exc, Http404):
        exc = NotFound(*exc.args)
    elif isinstance(exc, DjangoPermissionDenied):
        exc = PermissionDenied(*exc.args)

    response = exception_handler(exc, context)

    if response is None:
        if isinstance(exc, ObjectDoesNotExist):
            return Response(
                _error_body("NOT_FOUND", "The requested object was not found."),
                status=status.HTTP_404_NOT_FOUND,
            )
        view = context.get("view")
        logger.error(
            "Unhandled error in %s",
            view.__class__.__name__ if view else "unknown view",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        msg = str(exc) if settings.DEBUG else "An unexpected error occurred."
        return Response(
            _error_body("INTERNAL_ERROR", msg),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        response.data = _error_body("VALIDATION_ERROR", "Invalid input.", exc.detail)
        return response

    response.data = _error_body(_code_for(exc), str(exc.detail))
    return response
