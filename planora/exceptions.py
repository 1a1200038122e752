# exceptions.py
import logging

from rest_framework import exceptions
from rest_framework.views import exception_handler

log = logging.getLogger("planora.api")


def api_exception_handler(exc, context):
    """
    DRF's handler with the response body flattened to the {"error": code}
    envelope every planora endpoint uses.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        code = "unauthorized"
    elif isinstance(exc, exceptions.PermissionDenied):
        detail = str(exc.detail)
        code = detail if detail in ("unauthorized", "forbidden") else "forbidden"
    elif isinstance(exc, exceptions.MethodNotAllowed):
        code = "method_not_allowed"
    elif isinstance(exc, exceptions.NotFound):
        code = "not_found"
    elif isinstance(exc, exceptions.ParseError):
        code = "bad_request"
    else:
        code = getattr(exc, "default_code", None) or "error"

    if response.status_code >= 500:
        log.error("api error view=%s err=%s", context.get("view"), exc)
    response.data = {"error": code}
    return response


class InvalidRequest(exceptions.APIException):
    status_code = 400
    default_detail = "Request body must be a JSON object."
    default_code = "invalid_request"
