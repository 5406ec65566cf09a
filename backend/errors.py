"""Application error types.

Every error raised on purpose by the service derives from ``AppError`` so the
HTTP layer can turn it into a consistent ``ErrorResponse`` payload.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base application error with an error type, HTTP status and context."""

    error_type = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context: Dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is not None:
            return f"{self.error_type}: {self.message} (original: {cause})"
        return f"{self.error_type}: {self.message}"


class ValidationError(AppError):
    error_type = "VALIDATION_ERROR"
    status_code = 400


class BadRequestError(AppError):
    error_type = "BAD_REQUEST"
    status_code = 400


class NotFoundError(AppError):
    error_type = "NOT_FOUND"
    status_code = 404


class IngestError(AppError):
    """Raised when an uploaded source cannot be turned into a dataset."""

    error_type = "VALIDATION_ERROR"
    status_code = 400


class OperationError(AppError):
    """Raised when an analysis request cannot be completed."""

    error_type = "INTERNAL_ERROR"
    status_code = 500


class ExternalServiceError(AppError):
    """Raised when the text generation service fails or returns nothing usable."""

    error_type = "EXTERNAL_ERROR"
    status_code = 502


class ChartParseError(ExternalServiceError):
    """Raised when a chart proposal cannot be parsed into chart specs."""
