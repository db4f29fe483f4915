"""Error taxonomy shared by every app and the DRF handler that renders it."""

from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class DriveHubError(exceptions.APIException):
    """Base class for API errors that carry extra response fields."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error."
    default_code = "error"

    def __init__(self, message: str | None = None, **details: Any):
        super().__init__(detail=message or self.default_detail)
        self.message = str(self.detail)
        self.details = details


class ValidationFailed(DriveHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request."
    default_code = "invalid"


class AuthenticationFailed(DriveHubError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required."
    default_code = "not_authenticated"


class PermissionDenied(DriveHubError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied. Insufficient permissions."
    default_code = "permission_denied"


class NotFound(DriveHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class Conflict(DriveHubError):
    """Raised when a state precondition fails; reports the entity's actual state."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"


class UpstreamFailure(DriveHubError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream service failed."
    default_code = "upstream_failure"


class ConfigurationError(DriveHubError):
    default_detail = "Server misconfiguration."
    default_code = "configuration_error"


def _flatten_message(detail: Any) -> str:
    if isinstance(detail, (list, tuple)) and detail:
        return _flatten_message(detail[0])
    if isinstance(detail, dict):
        if "detail" in detail:
            return _flatten_message(detail["detail"])
        if "message" in detail:
            return _flatten_message(detail["message"])
        if "non_field_errors" in detail:
            return _flatten_message(detail["non_field_errors"])
        if detail:
            field, errors = next(iter(detail.items()))
            return f"{field}: {_flatten_message(errors)}"
        return "Invalid request."
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render every error as ``{"message": ..., **details}``.

    Django model validation errors are mapped to 400 so domain helpers can keep
    raising ``django.core.exceptions.ValidationError``.
    """
    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, "message_dict"):
            exc = exceptions.ValidationError(detail=exc.message_dict)
        else:
            exc = exceptions.ValidationError(detail=exc.messages)

    # Deferred: rest_framework.views pulls DEFAULT_PERMISSION_CLASSES, which import this module.
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view") if context else None
        logger.exception(
            "api: unhandled error in %s", view.__class__.__name__ if view else "view", exc_info=exc
        )
        return Response(
            {"message": "Internal server error."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, DriveHubError):
        body = {"message": exc.message}
        body.update(exc.details)
    elif isinstance(exc, exceptions.ValidationError) and isinstance(exc.detail, dict):
        body = {"message": _flatten_message(exc.detail), "errors": exc.detail}
    else:
        body = {"message": _flatten_message(response.data)}
    response.data = body
    return response
