"""Centralized exception handling system for the Newsdesk console."""

from typing import Optional, Dict, Any
from enum import Enum
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity levels for monitoring and alerting."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification and handling."""
    VALIDATION = "validation"
    BUSINESS_LOGIC = "business_logic"
    EXTERNAL_SERVICE = "external_service"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class NewsdeskException(Exception):
    """Base exception class for all Newsdesk errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        retry_after: Optional[int] = None
    ):
        self.message = message
        self.error_code = error_code
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.user_message = user_message or message
        self.retry_after = retry_after
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "retry_after": self.retry_after,
            "timestamp": self.timestamp.isoformat()
        }


class ValidationException(NewsdeskException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = str(value)

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            details=details,
            user_message=kwargs.pop('user_message', f"Invalid input: {message}"),
            **kwargs
        )


class ActionFailedException(NewsdeskException):
    """Raised when a remediation action is rejected by the backend."""

    def __init__(self, action: str, message: str, target_count: int = 0, **kwargs):
        details = kwargs.pop('details', {})
        details.update({"action": action, "target_count": target_count})

        super().__init__(
            message=f"Action '{action}' failed: {message}",
            error_code="ACTION_FAILED",
            category=ErrorCategory.BUSINESS_LOGIC,
            severity=ErrorSeverity.MEDIUM,
            details=details,
            user_message=f"Failed to {action.replace('_', ' ')}",
            **kwargs
        )


class GatewayException(NewsdeskException):
    """Raised when the Remote Data Gateway cannot serve a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        details.update({
            "service": "remote_data_gateway",
            "status_code": status_code
        })
        self.status_code = status_code

        super().__init__(
            message=message,
            error_code=kwargs.pop('error_code', "GATEWAY_ERROR"),
            category=ErrorCategory.EXTERNAL_SERVICE,
            severity=kwargs.pop('severity', ErrorSeverity.MEDIUM),
            details=details,
            user_message="The content backend is temporarily unavailable. Please try again later.",
            **kwargs
        )


class GatewayQueryException(GatewayException):
    """Raised when a table query is rejected or fails in transit."""

    def __init__(self, table: str, message: str, status_code: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        details["table"] = table
        self.table = table

        super().__init__(
            message=f"Query on '{table}' failed: {message}",
            status_code=status_code,
            error_code="GATEWAY_QUERY_ERROR",
            details=details,
            **kwargs
        )


class FunctionInvocationException(GatewayException):
    """Raised when a remote function errors or reports success=false."""

    def __init__(self, function_name: str, message: str, status_code: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        details["function"] = function_name
        self.function_name = function_name

        super().__init__(
            message=f"Function '{function_name}' failed: {message}",
            status_code=status_code,
            error_code="FUNCTION_INVOCATION_ERROR",
            details=details,
            **kwargs
        )


class ConfigurationException(NewsdeskException):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            details=details,
            user_message="The console is misconfigured. Please contact an administrator.",
            **kwargs
        )
