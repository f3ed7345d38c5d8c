from typing import Optional, Dict, Any, TYPE_CHECKING

from seacan.common.exceptions.base_exceptions import (
    SeacanBaseException,
    ErrorCode,
)

if TYPE_CHECKING:
    from seacan.common.dto.artifact import ExecutableArtifact


class ProtocolException(SeacanBaseException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PROTOCOL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, error_code, details, cause)


class MalformedMessageException(ProtocolException):
    def __init__(
        self,
        message: str,
        line_number: int,
        line: str,
        reason: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {
            "line_number": line_number,
            "line": line[:500],
        }
        if reason:
            details["reason"] = reason
        super().__init__(
            message=message,
            error_code=ErrorCode.PROTOCOL_MALFORMED_MESSAGE,
            details=details,
            cause=cause,
        )
        self.line_number = line_number
        self.line = line
        self.reason = reason


class ListingException(SeacanBaseException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.LISTING_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, error_code, details, cause)


class ListingFailedException(ListingException):
    def __init__(
        self,
        artifact: "ExecutableArtifact",
        cause: str,
        exit_code: Optional[int] = None,
        output: Optional[str] = None,
        error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {
            "target": artifact.target.name,
            "package_id": artifact.package_id.repr,
            "cause": cause,
        }
        if artifact.executable is not None:
            details["executable"] = str(artifact.executable)
        if exit_code is not None:
            details["exit_code"] = exit_code
        if output:
            details["output_excerpt"] = output[:1000]
        super().__init__(
            message=f"Listing tests of `{artifact.target.name}` failed: {cause}",
            error_code=ErrorCode.LISTING_FAILED,
            details=details,
            cause=error,
        )
        self.artifact = artifact
        self.reason = cause
        self.exit_code = exit_code
        self.output = output or ""
