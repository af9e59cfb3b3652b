"""
Error message extraction for backend responses

The backend reports failures in several body shapes (detail, message, error,
errors, validation_errors). These helpers turn any of them into one string
that can be surfaced to the user.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class FormValidationError(HTTPException):
    """422 carrying a {field: message} map for the form that was submitted"""

    def __init__(self, errors: dict[str, str], message: str = "Please fix the highlighted fields"):
        super().__init__(status_code=422, detail={"message": message, "errors": errors})
        self.errors = errors


ERROR_MESSAGES = {
    "NETWORK_ERROR": "Network error. Please check your internet connection.",
    "UNAUTHORIZED": "You are not authorized to perform this action.",
    "FORBIDDEN": "Access denied.",
    "NOT_FOUND": "The requested resource was not found.",
    "SERVER_ERROR": "Server error. Please try again later.",
    "VALIDATION_ERROR": "Please check your input and try again.",
    "EMAIL_EXISTS": "Email already registered",
    "INVALID_CREDENTIALS": "Invalid email or password",
    "TOKEN_EXPIRED": "Your session has expired. Please login again.",
    "PASSWORD_MISMATCH": "Passwords do not match",
    "WEAK_PASSWORD": "Password is too weak. Please choose a stronger password.",
    "INVALID_EMAIL": "Please enter a valid email address",
    "REQUIRED_FIELD": "This field is required",
}


def _detail_to_text(detail: Any) -> Any:
    # FastAPI style 422 bodies carry a list of {"loc", "msg", ...}
    if isinstance(detail, list):
        messages = [item.get("msg", str(item)) if isinstance(item, dict) else str(item) for item in detail]
        return ", ".join(messages)
    if isinstance(detail, dict):
        return detail.get("message") or detail.get("msg") or str(detail)
    return detail


def _flatten(values) -> list[str]:
    flat = []
    for value in values:
        if isinstance(value, (list, tuple)):
            flat.extend(str(v) for v in value)
        else:
            flat.append(str(value))
    return flat


def extract_error_message(error_data: Any, default_message: str = "An error occurred") -> str:
    """
    Extract an error message from a backend response body.

    Args:
        error_data: Decoded response body (dict, str or None)
        default_message: Returned when the body carries no usable message

    Returns:
        The extracted message
    """
    if not error_data:
        return default_message

    if isinstance(error_data, str):
        return error_data

    if not isinstance(error_data, dict):
        return default_message

    message = default_message
    if error_data.get("detail"):
        message = _detail_to_text(error_data["detail"])
    elif error_data.get("message"):
        message = error_data["message"]
    elif error_data.get("error"):
        message = error_data["error"]

    # Validation errors (list or {field: [messages]}) take precedence
    errors = error_data.get("errors")
    if errors:
        if isinstance(errors, list):
            message = ", ".join(_flatten(errors))
        elif isinstance(errors, dict):
            message = ", ".join(_flatten(errors.values()))

    validation_errors = error_data.get("validation_errors")
    if isinstance(validation_errors, dict) and validation_errors:
        message = "; ".join(
            f"{field}: {', '.join(map(str, errs)) if isinstance(errs, list) else errs}"
            for field, errs in validation_errors.items()
        )

    return str(message)


def get_user_friendly_error_message(status_code: Optional[int], error_data: Any = None) -> str:
    """Map an HTTP status (and body) to a message suitable for end users"""
    detail = error_data.get("detail") if isinstance(error_data, dict) else None
    detail_text = detail if isinstance(detail, str) else ""

    if status_code == 400:
        if "Email already registered" in detail_text:
            return ERROR_MESSAGES["EMAIL_EXISTS"]
        if "Invalid credentials" in detail_text:
            return ERROR_MESSAGES["INVALID_CREDENTIALS"]
        return ERROR_MESSAGES["VALIDATION_ERROR"]
    if status_code == 401:
        return ERROR_MESSAGES["UNAUTHORIZED"]
    if status_code == 403:
        return ERROR_MESSAGES["FORBIDDEN"]
    if status_code == 404:
        return ERROR_MESSAGES["NOT_FOUND"]
    if status_code == 500:
        return ERROR_MESSAGES["SERVER_ERROR"]
    return extract_error_message(error_data, ERROR_MESSAGES["SERVER_ERROR"])


async def handle_api_call(
    api_call: Callable[[], Awaitable[Any]], default_error_message: str = "Operation failed"
) -> dict[str, Any]:
    """
    Run a backend call and report the outcome instead of raising.

    Returns:
        {"success": True, "data": ...} or {"success": False, "error": message}
    """
    # Imported here: backend_client depends on this module
    from ..backend_client import BackendAPIError

    try:
        data = await api_call()
        return {"success": True, "data": data}
    except BackendAPIError as e:
        message = e.message or default_error_message
        logger.warning(f"⚠️ {default_error_message}: {message}")
        return {"success": False, "error": message, "status_code": e.status_code}
