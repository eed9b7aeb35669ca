"""
Error Service for centralized error handling and logging
Provides consistent error responses and logging across the application
"""
import logging
import traceback
import uuid
from datetime import datetime
from typing import Dict, Any
from flask import request, jsonify, current_app, has_request_context
from functools import wraps
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException


class ErrorCode:
    """Standard error codes"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_STATE = "INVALID_STATE"
    APPROVAL_BLOCKED = "APPROVAL_BLOCKED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    DATABASE_ERROR = "DATABASE_ERROR"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    HTTP_ERROR = "HTTP_ERROR"


class ErrorService:
    """Centralized error handling service"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def log_error(self, error: Exception, context: Dict[str, Any] = None) -> str:
        """
        Log error with context information

        Args:
            error: Exception object
            context: Additional context information

        Returns:
            Error ID for tracking
        """
        error_id = self._generate_error_id()

        error_info = {
            'error_id': error_id,
            'timestamp': datetime.utcnow().isoformat(),
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context or {}
        }

        # Add request context if available
        if has_request_context():
            error_info['request'] = {
                'method': request.method,
                'url': request.url,
                'remote_addr': request.remote_addr,
            }

        self.logger.error(f"Error {error_id}: {error_info}", exc_info=error)
        return error_id

    def create_error_response(self,
                              error_code: str,
                              message: str,
                              details: Dict[str, Any] = None,
                              status_code: int = 400) -> tuple:
        """
        Create standardized error response

        Args:
            error_code: Standard error code
            message: Human-readable error message
            details: Additional error details
            status_code: HTTP status code

        Returns:
            Tuple of (response, status_code)
        """
        response_data = {
            'success': False,
            'error': {
                'code': error_code,
                'message': message,
                'timestamp': datetime.utcnow().isoformat()
            }
        }

        if details:
            response_data['error']['details'] = details

        return jsonify(response_data), status_code

    def handle_not_found_error(self, resource: str = "Resource") -> tuple:
        """Handle not found errors"""
        return self.create_error_response(
            ErrorCode.NOT_FOUND,
            f"{resource} not found",
            status_code=404
        )

    def handle_unauthorized_error(self, message: str = "Authentication required") -> tuple:
        """Handle unauthorized errors"""
        return self.create_error_response(
            ErrorCode.UNAUTHORIZED,
            message,
            status_code=401
        )

    def handle_database_error(self, error: Exception) -> tuple:
        """Handle database errors"""
        error_id = self.log_error(error, {'type': 'database_error'})

        if current_app.debug:
            message = str(error)
        else:
            message = "Database operation failed"

        return self.create_error_response(
            ErrorCode.DATABASE_ERROR,
            message,
            {'error_id': error_id},
            500
        )

    def handle_internal_error(self, error: Exception) -> tuple:
        """Handle internal server errors"""
        error_id = self.log_error(error, {'type': 'internal_error'})

        if current_app.debug:
            message = str(error)
            details = {'error_id': error_id, 'traceback': traceback.format_exc()}
        else:
            message = "Internal server error"
            details = {'error_id': error_id}

        return self.create_error_response(
            ErrorCode.INTERNAL_ERROR,
            message,
            details,
            500
        )

    def _generate_error_id(self) -> str:
        """Generate unique error ID"""
        return str(uuid.uuid4())[:8].upper()


# Global error service instance
error_service = ErrorService()


class APIError(Exception):
    """Custom exception for API errors"""

    def __init__(self, error_code: str, message: str, status_code: int = 400, details: Dict[str, Any] = None):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Input failed validation; nothing was changed"""

    def __init__(self, errors: Dict[str, Any], message: str = None):
        if message is None:
            # Surface the first field message so callers get something readable
            first = next(iter(errors.values()), None) if errors else None
            if isinstance(first, (list, tuple)):
                first = first[0] if first else None
            message = first or "Validation failed"
        super().__init__(
            ErrorCode.VALIDATION_ERROR,
            message,
            422,
            {'validation_errors': errors}
        )
        self.validation_errors = errors


class InvalidStateError(APIError):
    """Transition is not permitted from the entity's current state"""

    def __init__(self, message: str, current_state: str = None):
        super().__init__(
            ErrorCode.INVALID_STATE,
            message,
            409,
            {'current_state': current_state} if current_state else None
        )
        self.current_state = current_state


class ApprovalBlockedError(APIError):
    """Approval preconditions are not met"""

    def __init__(self, reason: str):
        super().__init__(ErrorCode.APPROVAL_BLOCKED, reason, 422, {'reason': reason})
        self.reason = reason


class InsufficientBalanceError(APIError):

    def __init__(self, balance, amount):
        super().__init__(
            ErrorCode.INSUFFICIENT_BALANCE,
            "Insufficient wallet balance for this withdrawal",
            422,
            {'balance': float(balance), 'amount': float(amount)}
        )


class WebhookSignatureError(APIError):

    def __init__(self, gateway: str, message: str = "Invalid webhook signature"):
        super().__init__(ErrorCode.INVALID_SIGNATURE, message, 400, {'gateway': gateway})


class NotFoundError(APIError):
    """Custom exception for not found errors"""

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            ErrorCode.NOT_FOUND,
            f"{resource} not found",
            404
        )


class UnauthorizedError(APIError):
    """Custom exception for unauthorized errors"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            ErrorCode.UNAUTHORIZED,
            message,
            401
        )


class ForbiddenError(APIError):
    """Custom exception for forbidden errors"""

    def __init__(self, message: str = "Access forbidden"):
        super().__init__(
            ErrorCode.FORBIDDEN,
            message,
            403
        )


# Error handlers for Flask app
def register_error_handlers(app):
    """Register error handlers with Flask app"""
    from tutorhub import db

    @app.errorhandler(APIError)
    def handle_api_error(error):
        db.session.rollback()
        return error_service.create_error_response(
            error.error_code,
            error.message,
            error.details,
            error.status_code
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 404:
            return error_service.handle_not_found_error()
        return error_service.create_error_response(
            ErrorCode.HTTP_ERROR,
            error.description or error.name,
            status_code=error.code
        )

    @app.errorhandler(SQLAlchemyError)
    def handle_sqlalchemy_error(error):
        db.session.rollback()
        return error_service.handle_database_error(error)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        return error_service.handle_internal_error(error)


# Utility functions for common error patterns
def require_role(*roles: str):
    """
    Decorator to require one of the given roles

    Usage:
        @require_role('admin', 'superadmin')
        def admin_only():
            pass
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            from flask_login import current_user

            if not current_user.is_authenticated:
                raise UnauthorizedError()

            if current_user.role not in roles:
                raise ForbiddenError(f"Role '{' or '.join(roles)}' required")

            return func(*args, **kwargs)
        return wrapper
    return decorator


def admin_required(func):
    """Shorthand for require_role('superadmin', 'admin')"""
    return require_role('superadmin', 'admin')(func)
