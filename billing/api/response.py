from typing import Any, Optional

from rest_framework.response import Response

from billdesk.middleware import get_current_request_id


class APIResponse:
    """Standardized API response format."""

    @staticmethod
    def success(data: Any = None, message: str = "Success", status_code: int = 200) -> Response:
        response_data = {
            "success": True,
            "message": message,
        }
        if data is not None:
            response_data["data"] = data
        return Response(response_data, status=status_code)

    @staticmethod
    def error(
        code: str,
        message: str = "An error occurred",
        context: Optional[Any] = None,
        status_code: int = 400,
    ) -> Response:
        response_data = {
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "context": context,
            },
            "request_id": get_current_request_id(),
        }
        return Response(response_data, status=status_code)
