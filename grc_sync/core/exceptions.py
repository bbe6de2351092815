"""
Exception hierarchy of the sync service.

Every error carries an HTTP status and a machine-readable code, so the API
layer can render any of them without knowing its type. Keyword context given
to a constructor (``operation=``, ``channel=``...) lands in ``details`` when
it is not None.
"""

from typing import Any, Dict, Optional, Union

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class AppException(Exception):
    status_code: int = HTTP_400_BAD_REQUEST
    error_code: Optional[str] = None
    default_message: str = "Application error"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        **context: Any,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code or self.__class__.__name__
        self.status_code = status_code or self.status_code
        self.details = dict(details or {})
        self.details.update({key: value for key, value in context.items() if value is not None})
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', status_code={self.status_code})"


class ValidationException(AppException):
    status_code = HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.field = field
        self.value = value
        super().__init__(message, details=details, field=field, value=value)


class NotFoundError(AppException):
    """A record does not exist, or belongs to another organization."""
    status_code = HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[Union[str, Any]] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.resource = resource
        self.resource_id = resource_id
        if not message:
            message = f"{resource} with ID '{resource_id}' not found" if resource_id else f"{resource} not found"
        super().__init__(
            message,
            details=details,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
        )


class ConflictError(AppException):
    status_code = HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Conflict with current state"

    def __init__(self, message: Optional[str] = None, resource: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.resource = resource
        super().__init__(message, details=details, resource=resource)


class DatabaseError(AppException):
    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "DATABASE_ERROR"
    default_message = "Database operation failed"

    def __init__(self, message: Optional[str] = None, operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__(message, details=details, operation=operation)


class ServiceError(AppException):
    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "SERVICE_ERROR"
    default_message = "Service operation failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ChangeFeedError(AppException):
    """The change feed backend is unreachable or refused an operation."""
    status_code = HTTP_503_SERVICE_UNAVAILABLE
    error_code = "CHANGE_FEED_ERROR"
    default_message = "Change feed operation failed"

    def __init__(self, message: Optional[str] = None, channel: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.channel = channel
        super().__init__(message, details=details, channel=channel)


class OrchestrationError(AppException):
    """An orchestrator was used in a state that does not allow it."""
    status_code = HTTP_409_CONFLICT
    error_code = "ORCHESTRATION_ERROR"
    default_message = "Invalid orchestrator state"

    def __init__(self, message: Optional[str] = None, org_id: Optional[str] = None,
                 state: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details, org_id=org_id, state=state)
