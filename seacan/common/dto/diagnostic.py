import re
from pathlib import Path
from typing import Optional, Dict, Any, Tuple

from pydantic import Field

from seacan.common.dto.base import BaseDTO
from seacan.common.dto.artifact import PackageId, TargetDescriptor
from seacan.common.config.constants import DiagnosticSeverity


_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE_RE.sub("", text)


class DiagnosticLocation(BaseDTO):
    file_name: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file_name}:{self.line}:{self.column}"


class BuildDiagnostic(BaseDTO):
    severity: DiagnosticSeverity
    rendered_message: str
    rule: str = Field(default="generic")
    code: Optional[str] = None
    location: Optional[DiagnosticLocation] = None
    suggestion: Optional[str] = None
    package_id: Optional[PackageId] = None
    target: Optional[TargetDescriptor] = None
    raw_payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == DiagnosticSeverity.ERROR

    @property
    def is_warning(self) -> bool:
        return self.severity == DiagnosticSeverity.WARNING

    @property
    def raw_message(self) -> str:
        return str(self.raw_payload.get("message", ""))

    @property
    def compiler_rendered(self) -> Optional[str]:
        rendered = self.raw_payload.get("rendered")
        if rendered is None:
            return None
        return strip_ansi(str(rendered))

    def __str__(self) -> str:
        return self.rendered_message


class BuildScriptOutput(BaseDTO):
    package_id: PackageId
    linked_libs: Tuple[str, ...] = Field(default_factory=tuple)
    linked_paths: Tuple[str, ...] = Field(default_factory=tuple)
    cfgs: Tuple[str, ...] = Field(default_factory=tuple)
    env: Tuple[Tuple[str, str], ...] = Field(default_factory=tuple)
    out_dir: Optional[Path] = None

    @property
    def text(self) -> str:
        lines = [f"build script of {self.package_id.name or self.package_id.repr}"]
        lines.extend(f"cargo:rustc-link-lib={lib}" for lib in self.linked_libs)
        lines.extend(f"cargo:rustc-link-search={path}" for path in self.linked_paths)
        lines.extend(f"cargo:rustc-cfg={cfg}" for cfg in self.cfgs)
        lines.extend(f"cargo:rustc-env={key}={value}" for key, value in self.env)
        if self.out_dir is not None:
            lines.append(f"OUT_DIR={self.out_dir}")
        return "\n".join(lines)
