from enum import Enum
from typing import Optional, Dict, Any

from pydantic import ValidationError


class ErrorCode(str, Enum):
    UNKNOWN = "E0000"

    BUILD_FAILED = "E1000"
    BUILD_TARGET_NOT_FOUND = "E1001"
    BUILD_PACKAGE_NOT_FOUND = "E1002"
    BUILD_TIMEOUT = "E1005"
    BUILD_ABNORMAL_TERMINATION = "E1008"

    PROTOCOL_ERROR = "E2000"
    PROTOCOL_MALFORMED_MESSAGE = "E2001"

    LISTING_ERROR = "E3000"
    LISTING_FAILED = "E3001"

    VALIDATION_ERROR = "E7000"


class SeacanBaseException(Exception):
    """Root of every error raised by seacan.

    ``details`` holds JSON-friendly context for logs; ``cause`` is the
    lower-level exception, if any, that triggered this one.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = dict(details or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "exception_type": type(self).__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }
        if self.cause is not None:
            data["cause"] = repr(self.cause)
        return data

    def with_context(self, **kwargs: Any) -> "SeacanBaseException":
        self.details.update(kwargs)
        return self


class ValidationException(SeacanBaseException):
    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        details = dict(details or {})
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, cause)
        self.field_name = field_name
        self.field_value = field_value

    @classmethod
    def from_validation_error(cls, error: ValidationError, subject: str) -> "ValidationException":
        first = error.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        return cls(
            message=f"Invalid {subject}: {first.get('msg')}",
            field_name=location or None,
            field_value=first.get("input"),
            details={"error_count": error.error_count()},
            cause=error,
        )
