# ==============================================================================
# EXCEPTIONS - Error Envelope for Catalog Operations
# ==============================================================================
# Every error rendered by the API carries a code, a message and details.
# Storage failures are split by whether a reconnect can help.
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Root of every error the API renders.

    The exception handler in ``main`` turns any subclass into the
    ``{"success": false, "error": {...}}`` envelope using ``to_dict``.

    Attributes:
        message: Text shown to the client
        error_code: Stable identifier clients can branch on
        status_code: HTTP status of the rendered response
        details: Extra context such as the connection or resource name

    Example:
        >>> raise AppException("Catalog is read-only", "READ_ONLY", 409)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Render the error envelope returned to clients.

        Returns:
            JSON-ready dictionary with success set to False
        """
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"status_code={self.status_code})"
        )


# ==============================================================================
# DATABASE EXCEPTIONS
# ==============================================================================

class DatabaseError(AppException):
    """
    A storage failure the repository service could not map to a more
    specific error. Rendered as 503 unless a subclass says otherwise.
    """

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="DATABASE_ERROR",
            status_code=503,
            details=details,
        )


class ConnectivityError(DatabaseError):
    """
    Raised when a named connection cannot be reached or opened.

    This is the only error class that triggers connection recovery.
    """

    def __init__(
        self,
        message: str = "Failed to connect to database",
        connection_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        _details = details or {}
        if connection_name:
            _details["connection"] = connection_name
        super().__init__(message=message, details=_details)
        self.error_code = "DATABASE_CONNECTION_ERROR"
        self.connection_name = connection_name


class DataSourceNotFoundError(DatabaseError):
    """Raised when a connection name was never registered."""

    def __init__(self, connection_name: str) -> None:
        super().__init__(
            message=f"Data source '{connection_name}' is not registered",
            details={"connection": connection_name},
        )
        self.error_code = "DATASOURCE_NOT_FOUND"
        self.status_code = 500
        self.connection_name = connection_name


class ConstraintError(DatabaseError):
    """
    Raised when a write violates a store constraint.

    Maps to HTTP 409 Conflict. Never retried.
    """

    def __init__(
        self,
        message: str = "Constraint violation",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.error_code = "CONSTRAINT_VIOLATION"
        self.status_code = 409


class ServiceUnavailableError(AppException):
    """
    Raised when a datasource is down.

    Maps to HTTP 503 Service Unavailable.

    Attributes:
        recovered: Whether the connection was restored for later calls
    """

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        recovered: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        _details = details or {}
        _details["recovered"] = recovered
        super().__init__(
            message=message,
            error_code="SERVICE_UNAVAILABLE",
            status_code=503,
            details=_details,
        )
        self.recovered = recovered


# ==============================================================================
# RESOURCE EXCEPTIONS
# ==============================================================================

class NotFoundError(AppException):
    """
    Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found.

    Attributes:
        resource_type: Type of resource that was not found
        resource_id: Identifier of the missing resource
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
    ) -> None:
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id is not None:
            details["resource_id"] = str(resource_id)

        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details=details,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# ==============================================================================
# VALIDATION EXCEPTIONS
# ==============================================================================

class ValidationError(AppException):
    """
    Raised when input validation fails.

    Maps to HTTP 422 Unprocessable Entity.
    Contains field-level validation errors.
    """

    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=422,
            details={"validation_errors": errors or {}},
        )
        self.errors = errors or {}


class BadRequestError(AppException):
    """
    Raised for malformed or invalid requests.

    Maps to HTTP 400 Bad Request.
    """

    def __init__(
        self,
        message: str = "Bad request",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="BAD_REQUEST",
            status_code=400,
            details=details,
        )


class FilterParseError(BadRequestError):
    """
    Raised when filter input cannot be accepted.

    Only raised when unknown operators are configured to be rejected,
    or for an advanced-filter body that is not a filter at all.
    """

    def __init__(
        self,
        message: str = "Invalid filter",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.error_code = "INVALID_FILTER"
