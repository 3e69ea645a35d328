"""
Error taxonomy and error-to-response helpers for the support desk handlers.

Every failure a handler can report is a ``BaseServiceError`` subclass carrying
an error code, a severity and a category. ``get_http_status_code`` maps the
code onto the HTTP status the storefront expects and ``format_error_response``
renders the ``{"success": false, "error": ...}`` body.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from aws_lambda_powertools.metrics import MetricUnit
from pydantic import BaseModel, Field

from support_desk.handlers.utils.observability import logger, metrics, tracer


class ErrorSeverity(str, Enum):
    """Error severity levels for classification."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    VALIDATION = "VALIDATION"
    BUSINESS_LOGIC = "BUSINESS_LOGIC"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    PROTOCOL = "PROTOCOL"


class ErrorContext(BaseModel):
    """Context information for errors."""

    request_id: str = Field(description="Unique request identifier")
    operation: str = Field(description="Operation being performed")
    resource_id: Optional[str] = Field(default=None, description="Resource identifier")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class BaseServiceError(Exception):
    """Base exception class for service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.BUSINESS_LOGIC,
        context: Optional[ErrorContext] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context
        self.user_message = user_message or "Internal server error"
        self.error_id = str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.model_dump(mode="json") if self.context else None,
        }


class ValidationError(BaseServiceError):
    """Raised when input validation fails (missing fields, bad enums, limits)."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[List[Dict[str, str]]] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            context=context,
            user_message=message,
        )
        self.field_errors = field_errors or []


class NotFoundError(BaseServiceError):
    """Raised when a ticket or customer does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=f"{resource_type} with ID '{resource_id}' not found",
            error_code="RESOURCE_NOT_FOUND",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.BUSINESS_LOGIC,
            context=context,
            user_message=f"{resource_type} not found",
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class MethodNotAllowedError(BaseServiceError):
    """Raised when an endpoint is called with an unsupported HTTP verb."""

    def __init__(self, method: str, allowed_methods: List[str]):
        super().__init__(
            message=f"Method {method} not allowed, expected one of {', '.join(allowed_methods)}",
            error_code="METHOD_NOT_ALLOWED",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.PROTOCOL,
            user_message="Method not allowed",
        )
        self.method = method
        self.allowed_methods = allowed_methods


class UpstreamError(BaseServiceError):
    """Raised when the data store, commerce API or email provider fails."""

    def __init__(
        self,
        message: str,
        service_name: str,
        status_code: Optional[int] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=message,
            error_code="UPSTREAM_ERROR",
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.EXTERNAL_SERVICE,
            context=context,
            user_message=message,
        )
        self.service_name = service_name
        self.status_code = status_code


class ConfigurationError(BaseServiceError):
    """Raised when a required credential or setting is missing."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.INFRASTRUCTURE,
            user_message="Config error",
        )
        self.missing = missing or []


def create_error_context(
    request_id: str,
    operation: str,
    resource_id: Optional[str] = None,
    **additional_data: Any,
) -> ErrorContext:
    """Create an error context for consistent error handling."""
    return ErrorContext(
        request_id=request_id,
        operation=operation,
        resource_id=resource_id,
        additional_data=additional_data,
    )


@tracer.capture_method
def log_error_metrics(error: BaseServiceError) -> None:
    """Log error metrics for monitoring and alerting."""
    metrics.add_metric(name="ErrorCount", unit=MetricUnit.Count, value=1)
    metrics.add_metric(name=f"Error{error.category.value}Count", unit=MetricUnit.Count, value=1)

    tracer.put_annotation("error_code", error.error_code)
    tracer.put_metadata("error_details", error.to_dict())

    log = logger.error if error.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL) else logger.warning
    log(
        "Service error occurred",
        extra={
            "error_id": error.error_id,
            "error_code": error.error_code,
            "error_severity": error.severity.value,
            "error_category": error.category.value,
            "error_message": error.message,
            "context": error.context.model_dump(mode="json") if error.context else None,
        }
    )


def format_error_response(error: BaseServiceError) -> Dict[str, Any]:
    """Format error for API response."""
    response: Dict[str, Any] = {
        "success": False,
        "error": error.user_message,
        "code": error.error_code,
    }

    if isinstance(error, ValidationError) and error.field_errors:
        response["fieldErrors"] = error.field_errors

    return response


def get_http_status_code(error: BaseServiceError) -> int:
    """Get appropriate HTTP status code for error."""
    status_mapping = {
        "VALIDATION_ERROR": 400,
        "RESOURCE_NOT_FOUND": 404,
        "METHOD_NOT_ALLOWED": 405,
        "UPSTREAM_ERROR": 500,
        "CONFIGURATION_ERROR": 500,
    }

    return status_mapping.get(error.error_code, 500)
