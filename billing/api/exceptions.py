import logging

from rest_framework.views import exception_handler

from billing.exceptions import BillingError

from .response import APIResponse

logger = logging.getLogger(__name__)


def billing_exception_handler(exc, context):
    """Render billing errors and DRF errors in one envelope."""
    if isinstance(exc, BillingError):
        view = context.get("view")
        view_name = view.__class__.__name__ if view else "unknown view"
        if exc.http_status >= 500:
            logger.error(f"{exc.error_code} in {view_name}: {exc.message}", exc_info=exc)
        else:
            logger.warning(f"{exc.error_code} in {view_name}: {exc.message}")
        error = exc.to_dict()
        return APIResponse.error(error["code"], error["message"], error["context"], status_code=exc.http_status)

    response = exception_handler(exc, context)
    if response is None:
        return None

    code = getattr(exc, "default_code", "error").upper()
    detail = response.data
    message = detail.get("detail", "Invalid request") if isinstance(detail, dict) else "Invalid request"
    context_data = None if isinstance(detail, dict) and set(detail) == {"detail"} else detail
    wrapped = APIResponse.error(code, str(message), context_data, status_code=response.status_code)
    for header in ("WWW-Authenticate", "Retry-After"):
        if header in response:
            wrapped[header] = response[header]
    return wrapped
