"""
Standardized API responses for the procurement endpoints.

Every response body follows the envelope:
{
    "status": "success" | "error",
    "message": "string message or empty",
    "data": {...} | [] | null
}

Domain failures raised by the line-item operations (Django ValidationError
subclasses and stale-version conflicts) are translated here, so views can let
them propagate.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status as http_status
from rest_framework.renderers import JSONRenderer

from core.base.exceptions import StaleRecord

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Format every handled error into the standard envelope.

    Django ValidationError (and the procurement errors built on it) become
    400 responses unless the error class declares its own ``status_code``.
    StaleRecord becomes 409.
    """
    if isinstance(exc, StaleRecord):
        logger.info("Rejected stale write: %s", exc)
        return Response(
            {"status": "error", "message": str(exc), "data": {"code": "stale_record"}},
            status=http_status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, DjangoValidationError):
        status_code = getattr(exc, 'status_code', http_status.HTTP_400_BAD_REQUEST)
        code = getattr(exc, 'default_code', 'invalid')
        data = {"code": code}
        if hasattr(exc, 'error_dict'):
            data["errors"] = exc.message_dict
        return Response(
            {"status": "error", "message": "; ".join(exc.messages), "data": data},
            status=status_code,
        )

    if isinstance(exc, Http404):
        return Response(
            {"status": "error", "message": "Not found.", "data": None},
            status=http_status.HTTP_404_NOT_FOUND,
        )

    response = exception_handler(exc, context)

    if response is not None:
        response.data = format_error_response(response.data, response.status_code)

    return response


def format_error_response(errors, status_code):
    """
    Format error payloads into the standard envelope.

    Handles:
    - {"field": ["error1", "error2"]} -> "field: error1, error2"
    - {"detail": "message"} -> "message"
    - ["error1", "error2"] -> "error1, error2"
    """
    message = ""
    data = None

    if isinstance(errors, dict):
        error_messages = []
        for field, field_errors in errors.items():
            if field == 'detail':
                message = str(field_errors)
            elif isinstance(field_errors, list):
                error_messages.append(f"{field}: {', '.join(str(e) for e in field_errors)}")
            elif isinstance(field_errors, dict):
                error_messages.append(f"{field}: {format_nested_errors(field_errors)}")
            else:
                error_messages.append(f"{field}: {str(field_errors)}")

        if error_messages:
            message = "; ".join(error_messages)
            data = errors

    elif isinstance(errors, list):
        message = ", ".join(str(e) for e in errors)

    else:
        message = str(errors)

    return {
        "status": "error",
        "message": message,
        "data": data
    }


def format_nested_errors(errors_dict):
    """Format nested error dictionaries."""
    messages = []
    for key, value in errors_dict.items():
        if isinstance(value, list):
            messages.append(f"{key}: {', '.join(str(v) for v in value)}")
        elif isinstance(value, dict):
            messages.append(f"{key}: {format_nested_errors(value)}")
        else:
            messages.append(f"{key}: {str(value)}")
    return "; ".join(messages)


class StandardizedJSONRenderer(JSONRenderer):
    """JSON renderer that wraps responses which are not already in the envelope."""

    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = renderer_context.get('response') if renderer_context else None
        if response is not None and response.status_code == 204:
            return b''
        if response is not None and not self.is_already_formatted(data):
            if response.status_code >= 400:
                data = format_error_response(data, response.status_code)
            else:
                data = self.format_success_response(data)

        return super().render(data, accepted_media_type, renderer_context)

    def is_already_formatted(self, data):
        return isinstance(data, dict) and {'status', 'message', 'data'} <= set(data.keys())

    def format_success_response(self, data):
        if isinstance(data, dict) and 'detail' in data:
            return {"status": "success", "message": str(data['detail']), "data": None}
        if data is None or (isinstance(data, dict) and not data):
            return {"status": "success", "message": "", "data": None}
        return {"status": "success", "message": "", "data": data}


def success_response(data=None, message="", status_code=http_status.HTTP_200_OK):
    """
    Build a standardized success response.

    Usage:
        return success_response(
            data=PurchaseOrderItemSerializer(item).data,
            message="Items received successfully",
        )
    """
    return Response({
        "status": "success",
        "message": message,
        "data": data
    }, status=status_code)


def error_response(message, data=None, status_code=http_status.HTTP_400_BAD_REQUEST):
    """
    Build a standardized error response.

    Usage:
        return error_response(
            message="Invalid data provided",
            data=serializer.errors,
        )
    """
    return Response({
        "status": "error",
        "message": message,
        "data": data
    }, status=status_code)
