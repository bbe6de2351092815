"""
Base service class providing common functionality for all services.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Dict, List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from grc_sync.core.exceptions import AppException, ServiceError, ValidationException
from grc_sync.core.logging import get_logger

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class BaseService(ABC):
    """
    Base class for all services.

    Services receive a session factory rather than a session; every public
    operation runs in its own unit of work.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self.logger = get_logger(f"grc_sync.services.{self.get_service_name()}")

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log an operation and its parameters at INFO."""
        detail_text = ", ".join(f"{key}={value}" for key, value in (details or {}).items())
        self.logger.info(f"{operation}({detail_text})" if detail_text else operation)

    def handle_error(self, error: Exception, operation: str) -> None:
        """Log and re-raise; unexpected errors are wrapped in ServiceError."""
        error_msg = f"Error in {operation}: {str(error)}"
        self.logger.error(error_msg)
        if isinstance(error, AppException):
            raise error
        raise ServiceError(error_msg) from error

    def validate_input(self, data: Dict[str, Any], required_fields: List[str]) -> None:
        """Raise ValidationException naming every required field that is missing or None."""
        missing_fields = [field for field in required_fields if field not in data or data[field] is None]
        if missing_fields:
            raise ValidationException(f"Missing required fields: {', '.join(missing_fields)}")

    @abstractmethod
    def get_service_name(self) -> str:
        """Name used for the service logger."""
        pass
