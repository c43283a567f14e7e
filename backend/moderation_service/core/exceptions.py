"""
Custom exceptions for the moderation service.
"""

from typing import Any, Dict, Optional, List
from http import HTTPStatus


class AppException(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Error message
        status_code: HTTP status code
        code: Application error code
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details
            }
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(AppException):
    """Raised when request data fails validation."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        field_errors: Optional[Dict[str, List[str]]] = None
    ):
        if field_errors:
            details = details or {}
            details["field_errors"] = field_errors
        super().__init__(
            message=message,
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="VALIDATION_ERROR",
            details=details
        )


class NotFoundError(AppException):
    """Raised when a resource is not found."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None
    ):
        if resource_type:
            details = details or {}
            details["resource_type"] = resource_type
        if resource_id:
            details = details or {}
            details["resource_id"] = str(resource_id)
        super().__init__(
            message=message,
            status_code=HTTPStatus.NOT_FOUND,
            code="NOT_FOUND",
            details=details
        )


class StatePreconditionError(AppException):
    """Raised when a transition is requested from the wrong status."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        current_status: Optional[str] = None
    ):
        if current_status:
            details = details or {}
            details["current_status"] = current_status
        super().__init__(
            message=message,
            status_code=HTTPStatus.BAD_REQUEST,
            code="INVALID_STATE",
            details=details
        )


class AuthenticationError(AppException):
    """Raised when the caller identity is missing or malformed."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=HTTPStatus.UNAUTHORIZED,
            code="AUTHENTICATION_ERROR",
            details=details
        )


class DatabaseError(AppException):
    """Raised when there's a database error."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None
    ):
        if operation:
            details = details or {}
            details["operation"] = operation
        super().__init__(
            message=message,
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="DATABASE_ERROR",
            details=details
        )


class EventPublishError(AppException):
    """Raised when the event bus cannot accept an event."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        event_type: Optional[str] = None
    ):
        if event_type:
            details = details or {}
            details["event_type"] = event_type
        super().__init__(
            message=message,
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            code="EVENT_PUBLISH_ERROR",
            details=details
        )


# Convenience functions
def raise_not_found(
    resource_type: str,
    resource_id: Any,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Raise a NotFoundError with a standard message."""
    raise NotFoundError(
        message=f"{resource_type} {resource_id} not found",
        details=details,
        resource_type=resource_type,
        resource_id=resource_id
    )


def raise_validation_error(
    message: str,
    field: Optional[str] = None
) -> None:
    """Raise a ValidationError, optionally attributed to a single field."""
    raise ValidationError(
        message=message,
        field_errors={field: [message]} if field else None
    )
