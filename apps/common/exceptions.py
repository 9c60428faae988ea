import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current state of the resource."
    default_code = "conflict"


class TransactionFailed(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Database error. No changes were saved."
    default_code = "transaction_error"


def _first_message(value):
    if isinstance(value, dict):
        for item in value.values():
            message = _first_message(item)
            if message:
                return message
        return None
    if isinstance(value, (list, tuple)):
        for item in value:
            message = _first_message(item)
            if message:
                return message
        return None
    return str(value) if value else None


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception("Database error in %s", view.__class__.__name__ if view else "unknown view")
        exc = TransactionFailed()

    response = exception_handler(exc, context)
    if response is None:
        return response

    if isinstance(response.data, dict):
        fields = {k: v for k, v in response.data.items() if k != "detail"}
        detail = response.data.get("detail") or _first_message(fields) or "Request failed"
    elif isinstance(response.data, list):
        fields = {}
        detail = _first_message(response.data) or "Request failed"
    else:
        detail = "Request failed"
        fields = {}

    response.data = {
        "code": getattr(exc, "default_code", "error"),
        "detail": detail,
        "fields": fields,
    }
    return response
