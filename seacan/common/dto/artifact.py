import re
from pathlib import Path
from typing import Optional, Tuple, Union, Any

from pydantic import Field, field_validator, model_validator

from seacan.common.dto.base import BaseDTO
from seacan.common.config.constants import (
    EXECUTABLE_TARGET_KINDS,
    LIBRARY_KIND_ALIASES,
    TargetKind,
)


_LEGACY_ID_RE = re.compile(r"^(?P<name>\S+) (?P<version>\S+) \((?P<source>.+)\)$")
_SPEC_ID_RE = re.compile(r"^(?P<source>[^#]+)#(?:(?P<name>[^@]+)@)?(?P<version>.+)$")


class PackageId(BaseDTO):
    """Opaque package identity as printed by Cargo.

    Cargo has used two spellings: ``name 0.1.0 (path+file:///x)`` before
    1.77 and ``path+file:///x#name@0.1.0`` since. The accessors understand
    both and return ``None`` for anything else.
    """

    repr: str

    @model_validator(mode="before")
    @classmethod
    def from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"repr": data}
        return data

    def _parts(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        legacy = _LEGACY_ID_RE.match(self.repr)
        if legacy:
            return legacy.group("name"), legacy.group("version"), legacy.group("source")

        spec = _SPEC_ID_RE.match(self.repr)
        if spec:
            source = spec.group("source")
            name = spec.group("name") or source.rstrip("/").rsplit("/", 1)[-1]
            return name, spec.group("version"), source

        return None, None, None

    @property
    def name(self) -> Optional[str]:
        return self._parts()[0]

    @property
    def version(self) -> Optional[str]:
        return self._parts()[1]

    @property
    def source(self) -> Optional[str]:
        return self._parts()[2]

    def __str__(self) -> str:
        return self.repr


class TargetDescriptor(BaseDTO):
    name: str
    kind: Tuple[str, ...]
    crate_types: Tuple[str, ...] = Field(default_factory=tuple)
    src_path: Path
    edition: Optional[str] = None
    required_features: Tuple[str, ...] = Field(default_factory=tuple)
    doctest: bool = True
    test: bool = True

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("Target kind must not be empty")
        known = {k.value for k in TargetKind} | LIBRARY_KIND_ALIASES
        unknown = [k for k in v if k not in known]
        if unknown:
            raise ValueError(f"Unknown target kind(s): {unknown}")
        return v

    @property
    def target_kind(self) -> TargetKind:
        first = self.kind[0]
        if first in LIBRARY_KIND_ALIASES:
            return TargetKind.LIB
        return TargetKind(first)

    @property
    def is_executable_kind(self) -> bool:
        return self.target_kind in EXECUTABLE_TARGET_KINDS


class ArtifactProfile(BaseDTO):
    opt_level: str
    debuginfo: Optional[Union[int, str]] = None
    debug_assertions: bool = False
    overflow_checks: bool = False
    test: bool = False

    @field_validator("opt_level", mode="before")
    @classmethod
    def coerce_opt_level(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v


class ExecutableArtifact(BaseDTO):
    package_id: PackageId
    target: TargetDescriptor
    profile: ArtifactProfile
    features: Tuple[str, ...] = Field(default_factory=tuple)
    filenames: Tuple[Path, ...] = Field(default_factory=tuple)
    executable: Optional[Path] = None
    fresh: bool = False

    @property
    def is_executable(self) -> bool:
        return self.executable is not None

    @property
    def is_test_harness(self) -> bool:
        return self.profile.test

    @property
    def key(self) -> Tuple[str, str, Tuple[str, ...]]:
        return (self.package_id.repr, self.target.name, self.target.kind)

    @property
    def display_name(self) -> str:
        return f"{self.target.name} ({self.target.target_kind.value})"
