from typing import Dict, Any, Optional
from datetime import datetime, timezone
from fastapi import status
from pydantic import BaseModel
import logging

logger = logging.getLogger(__name__)


class BaseCustomException(Exception):
    """Base class for custom exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(BaseCustomException):
    """Malformed or missing input, unknown references, unrecognized status"""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            error_code=error_code or "VALIDATION_ERROR"
        )


class AuthenticationError(BaseCustomException):
    """Missing, expired or otherwise unusable bearer token"""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
            error_code=error_code or "AUTHENTICATION_ERROR"
        )


class AuthorizationError(BaseCustomException):
    """Subject is authenticated but not entitled to the operation"""

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
            error_code=error_code or "AUTHORIZATION_ERROR"
        )


class NotFoundError(BaseCustomException):
    """Exception for resource not found errors"""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code=error_code or "NOT_FOUND_ERROR"
        )


class DatabaseError(BaseCustomException):
    """Exception for database errors"""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code=error_code or "DATABASE_ERROR"
        )


class ErrorResponse(BaseModel):
    """Standard error response model"""
    error: str
    message: str
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None
    request_id: Optional[str] = None


def create_error_response(
    exception: BaseCustomException,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """Create standardized error response"""
    response = {
        "error": exception.__class__.__name__.replace("Error", " Error"),
        "message": exception.message,
        "error_code": exception.error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id
    }

    if exception.details:
        response["details"] = exception.details

    return response


def handle_database_error(error: Exception, operation: str = "database operation") -> DatabaseError:
    """Handle database errors and convert to DatabaseError"""
    logger.error(f"Database error during {operation}: {error}")

    error_message = "Database operation failed"
    if "connection" in str(error).lower():
        error_message = "Database connection failed"
    elif "timeout" in str(error).lower():
        error_message = "Database operation timed out"
    elif "constraint" in str(error).lower():
        error_message = "Database constraint violation"

    return DatabaseError(
        message=error_message,
        details={"operation": operation, "original_error": str(error)},
        error_code="DATABASE_OPERATION_ERROR"
    )
