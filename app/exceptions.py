"""
MediaTrack - Custom Exceptions and Exception Handlers
"""
import structlog
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from api_responses import ErrorCode, error_response
from db import db

logger = structlog.get_logger('exceptions')


class MediaTrackException(Exception):
    """Base exception for MediaTrack"""
    status_code = 400

    def __init__(self, message: str, code: str = "MEDIATRACK_ERROR", details: dict = None):
        self.message = message
        self.code = code
        self.details = details or None
        super().__init__(message)

    def to_dict(self):
        data = {
            'code': self.code,
            'success': False,
            'message': self.message,
        }
        if self.details:
            data['details'] = self.details
        return data


class ValidationException(MediaTrackException):
    """Missing or malformed input; details maps field -> message"""
    status_code = 400

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, code=ErrorCode.VALIDATION_ERROR, details=details)
        logger.warning("validation_error", message=message, details=details)


class UnsupportedKindException(MediaTrackException):
    """Unknown media kind, or a kind the provider cannot serve"""
    status_code = 400

    def __init__(self, media_kind, provider: str = None):
        if provider:
            message = f"Media kind '{media_kind}' is not supported by provider '{provider}'"
        else:
            message = f"Unsupported media kind '{media_kind}'"
        super().__init__(message, code=ErrorCode.UNSUPPORTED_KIND, details={'media_kind': media_kind})
        logger.warning("unsupported_media_kind", media_kind=media_kind, provider=provider)


class NotFoundException(MediaTrackException):
    """Unknown id, or an id owned by another user"""
    status_code = 404

    def __init__(self, resource: str, resource_id=None):
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message, code=ErrorCode.NOT_FOUND)
        logger.info("not_found", resource=resource, resource_id=resource_id)


class ConflictException(MediaTrackException):
    """Unique key already taken"""
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.CONFLICT)
        logger.warning("conflict", message=message)


class UpstreamFetchException(MediaTrackException):
    """Metadata provider request failed"""
    status_code = 502

    def __init__(self, provider: str, message: str, http_status: int = None):
        self.provider = provider
        self.http_status = http_status
        super().__init__(f"{provider}: {message}", code=ErrorCode.UPSTREAM_ERROR,
                         details={'provider': provider, 'http_status': http_status})
        logger.warning("upstream_error", provider=provider, message=message, http_status=http_status)


class DatabaseException(MediaTrackException):
    """Database-related exceptions"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.DATABASE_ERROR)
        logger.error(f"Database error: {message}")


class AuthenticationException(MediaTrackException):
    """Authentication-related exceptions"""
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code=ErrorCode.UNAUTHORIZED)
        logger.warning(f"Authentication error: {message}")


class AuthorizationException(MediaTrackException):
    """Authorization-related exceptions"""
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code=ErrorCode.FORBIDDEN)
        logger.warning(f"Authorization error: {message}")


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions"""
        return error_response(
            e.name.upper().replace(' ', '_'),
            message=e.description,
            status_code=e.code,
            log_error=False,
        )

    @app.errorhandler(MediaTrackException)
    def handle_mediatrack_exception(e):
        """Handle MediaTrack custom exceptions, status comes from the class"""
        return error_response(
            e.code,
            message=e.message,
            details=e.details,
            status_code=e.status_code,
            log_error=False,
        )

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        """Roll back the failed session and answer with DATABASE_ERROR"""
        db.session.rollback()
        error = DatabaseException(f"{type(e).__name__}: {e}")
        return error_response(
            error.code,
            message="Database operation failed",
            status_code=error.status_code,
            log_error=False,
        )

    @app.errorhandler(Exception)
    def handle_generic_exception(e):
        """Handle all other exceptions"""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return error_response(ErrorCode.INTERNAL_ERROR, status_code=500, log_error=False)
