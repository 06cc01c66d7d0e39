"""
API Response Utilities - Standardized error handling and responses
"""

from flask import jsonify
from functools import wraps
import logging

logger = logging.getLogger(__name__)


# API Error Codes
class ErrorCode:
    SUCCESS = "SUCCESS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    UNSUPPORTED_KIND = "UNSUPPORTED_KIND"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


DEFAULT_MESSAGES = {
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.VALIDATION_ERROR: "Invalid request parameters",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred",
    ErrorCode.UNAUTHORIZED: "Authentication required",
    ErrorCode.FORBIDDEN: "Access forbidden",
    ErrorCode.CONFLICT: "Resource conflict",
    ErrorCode.UNSUPPORTED_KIND: "Unsupported media kind",
    ErrorCode.UPSTREAM_ERROR: "Metadata provider unavailable",
}


def success_response(data=None, message=None, status_code=200):
    """
    Standard success response format for API endpoints
    """
    response = {"code": ErrorCode.SUCCESS, "success": True}

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    return jsonify(response), status_code


def error_response(
    error_code=ErrorCode.INTERNAL_ERROR,
    message=None,
    details=None,
    status_code=400,
    log_error=True,
):
    """
    Standard error response format for API endpoints
    """
    response = {"code": error_code, "success": False}

    message = message or DEFAULT_MESSAGES.get(error_code)
    if message:
        response["message"] = message

    if details:
        response["details"] = details

    if log_error and error_code == ErrorCode.INTERNAL_ERROR:
        logger.error(f"{error_code}: {message} | Details: {details}")

    return jsonify(response), status_code


def handle_api_errors(f):
    """
    Decorator for API endpoints: turns malformed request values into
    validation errors. Domain exceptions pass through to the app handlers.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValueError as e:
            return error_response(ErrorCode.VALIDATION_ERROR, message=str(e), status_code=400, log_error=False)
        except KeyError as e:
            return error_response(
                ErrorCode.VALIDATION_ERROR,
                message=f"Missing required parameter: {str(e)}",
                status_code=400,
                log_error=False,
            )

    return wrapper


def paginated_response(items, total, page, per_page, has_more=None):
    """
    Standard paginated response format for list endpoints
    """
    response = {
        "code": ErrorCode.SUCCESS,
        "success": True,
        "data": items,
        "pagination": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": (total + per_page - 1) // per_page,
        },
    }

    if has_more is not None:
        response["pagination"]["has_more"] = has_more
    else:
        response["pagination"]["has_more"] = page * per_page < total

    response["pagination"]["next_page"] = page + 1 if response["pagination"]["has_more"] else None
    response["pagination"]["prev_page"] = page - 1 if page > 1 else None

    return jsonify(response), 200
