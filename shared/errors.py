"""
Shared error handling for the Quake Proxy.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    error: str
    details: Dict[str, Any] = {}


class QuakeProxyException(Exception):
    """Base exception for Quake Proxy services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        self.headers: Dict[str, str] = {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            error=self.message,
            details=self.details
        )


class ValidationError(QuakeProxyException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(QuakeProxyException):
    """Requested record does not exist upstream."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class RateLimitError(QuakeProxyException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)


class ServiceError(QuakeProxyException):
    """Service-related errors."""

    status_code = 500

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)


class ExternalServiceError(QuakeProxyException):
    """External service errors."""

    status_code = 500

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class CacheStoreError(QuakeProxyException):
    """Key-value store unavailable or misbehaving."""

    status_code = 503

    def __init__(self, operation: str, message: str = "Cache store error", details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__("CACHE_STORE_ERROR", f"{operation}: {message}", details)
