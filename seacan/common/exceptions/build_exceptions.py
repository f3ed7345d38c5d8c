from typing import Optional, Dict, Any, List, TYPE_CHECKING

from seacan.common.exceptions.base_exceptions import (
    SeacanBaseException,
    ErrorCode,
)

if TYPE_CHECKING:
    from seacan.common.dto.diagnostic import BuildDiagnostic


class BuildException(SeacanBaseException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.BUILD_FAILED,
        package: Optional[str] = None,
        command: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        details = details or {}
        if package:
            details["package"] = package
        if command:
            details["command"] = " ".join(command)
        super().__init__(message, error_code, details, cause)
        self.package = package
        self.command = command or []


class BuildFailedException(BuildException):
    def __init__(
        self,
        message: str,
        diagnostics: Optional[List["BuildDiagnostic"]] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        package: Optional[str] = None,
        command: Optional[List[str]] = None,
        error_code: ErrorCode = ErrorCode.BUILD_FAILED,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        details = details or {}
        if exit_code is not None:
            details["exit_code"] = exit_code
        if stderr:
            details["stderr_excerpt"] = stderr[-1000:]
        super().__init__(
            message=message,
            error_code=error_code,
            package=package,
            command=command,
            details=details,
            cause=cause,
        )
        self.diagnostics = list(diagnostics or [])
        self.exit_code = exit_code
        self.stderr = stderr or ""
        self.details["error_count"] = len(self.errors)

    @property
    def errors(self) -> List["BuildDiagnostic"]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> List["BuildDiagnostic"]:
        return [d for d in self.diagnostics if d.is_warning]

    def render(self) -> str:
        lines = [self.message]
        lines.extend(d.rendered_message for d in self.diagnostics if d.is_error)
        return "\n".join(lines)


class TargetNotFoundException(BuildFailedException):
    def __init__(
        self,
        target_name: str,
        diagnostics: Optional[List["BuildDiagnostic"]] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        package: Optional[str] = None,
        command: Optional[List[str]] = None,
    ):
        super().__init__(
            message=f"`{target_name}` not found",
            diagnostics=diagnostics,
            exit_code=exit_code,
            stderr=stderr,
            package=package,
            command=command,
            error_code=ErrorCode.BUILD_TARGET_NOT_FOUND,
            details={"target_name": target_name},
        )
        self.target_name = target_name


class PackageNotFoundException(BuildFailedException):
    def __init__(
        self,
        package_spec: str,
        diagnostics: Optional[List["BuildDiagnostic"]] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        package: Optional[str] = None,
        command: Optional[List[str]] = None,
    ):
        super().__init__(
            message=f"Package ID specification `{package_spec}` did not match any packages",
            diagnostics=diagnostics,
            exit_code=exit_code,
            stderr=stderr,
            package=package,
            command=command,
            error_code=ErrorCode.BUILD_PACKAGE_NOT_FOUND,
            details={"package_spec": package_spec},
        )
        self.package_spec = package_spec


class AbnormalTerminationException(BuildException):
    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        package: Optional[str] = None,
        command: Optional[List[str]] = None,
        error_code: ErrorCode = ErrorCode.BUILD_ABNORMAL_TERMINATION,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        details = details or {}
        if exit_code is not None:
            details["exit_code"] = exit_code
        if stderr:
            details["stderr_excerpt"] = stderr[-1000:]
        super().__init__(
            message=message,
            error_code=error_code,
            package=package,
            command=command,
            details=details,
            cause=cause,
        )
        self.exit_code = exit_code
        self.stderr = stderr or ""


class BuildTimeoutException(AbnormalTerminationException):
    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        elapsed_seconds: Optional[float] = None,
        package: Optional[str] = None,
        command: Optional[List[str]] = None,
        stderr: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        if elapsed_seconds:
            details["elapsed_seconds"] = elapsed_seconds
        super().__init__(
            message=message,
            stderr=stderr,
            package=package,
            command=command,
            error_code=ErrorCode.BUILD_TIMEOUT,
            details=details,
        )
        self.timeout_seconds = timeout_seconds
        self.elapsed_seconds = elapsed_seconds
