from pathlib import Path
from typing import Optional, Dict, List, Tuple
from enum import Enum

from pydantic import Field, field_validator, model_validator

from seacan.common.dto.base import BaseDTO
from seacan.common.dto.artifact import PackageId
from seacan.common.dto.selection import TypeSpec
from seacan.common.config.constants import BuildMode, PACKAGE_SPEC_ANY
from seacan.common.config.logging_config import get_logger


logger = get_logger(__name__)


class PackageSpecKind(str, Enum):
    ANY = "any"
    NAME = "name"
    ID = "id"


class PackageSpec(BaseDTO):
    """What is passed to ``cargo --package``."""

    kind: PackageSpecKind = PackageSpecKind.ANY
    value: str = ""

    @model_validator(mode="after")
    def validate_value(self) -> "PackageSpec":
        if self.kind != PackageSpecKind.ANY and not self.value:
            raise ValueError(f"PackageSpec.{self.kind.value} requires a value")
        return self

    @classmethod
    def any(cls) -> "PackageSpec":
        return cls(kind=PackageSpecKind.ANY)

    @classmethod
    def name(cls, name: str) -> "PackageSpec":
        return cls(kind=PackageSpecKind.NAME, value=name)

    @classmethod
    def id(cls, package_id: PackageId) -> "PackageSpec":
        return cls(kind=PackageSpecKind.ID, value=package_id.repr)

    def as_repr(self) -> str:
        if self.kind == PackageSpecKind.ANY:
            return PACKAGE_SPEC_ANY
        return self.value


class FeatureSpec(BaseDTO):
    all_features: bool = False
    include_default: bool = True
    features: Tuple[str, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def validate_combination(self) -> "FeatureSpec":
        if self.all_features and (self.features or not self.include_default):
            raise ValueError("--all-features cannot be combined with a feature subset")
        return self

    @classmethod
    def new(cls, features: List[str]) -> "FeatureSpec":
        return cls(features=tuple(features))

    @classmethod
    def new_no_default(cls, features: List[str]) -> "FeatureSpec":
        return cls(include_default=False, features=tuple(features))

    @classmethod
    def all(cls) -> "FeatureSpec":
        return cls(all_features=True)

    @classmethod
    def default_only(cls) -> "FeatureSpec":
        return cls()

    @classmethod
    def none(cls) -> "FeatureSpec":
        return cls(include_default=False)

    def with_feature(self, feature: str) -> "FeatureSpec":
        if self.all_features:
            logger.info(f"Ignoring feature {feature!r}: all features are already enabled")
            return self
        return self.model_copy(update={"features": (*self.features, feature)})

    def to_args(self) -> List[str]:
        if self.all_features:
            return ["--all-features"]
        args: List[str] = []
        if self.features:
            args.extend(["--features", ",".join(self.features)])
        if not self.include_default:
            args.append("--no-default-features")
        return args


class CompileRequest(BaseDTO):
    """Everything needed for one cargo invocation.

    ``BUILD`` mode compiles a single binary or example (or the whole package
    when neither is named). ``TEST`` mode runs ``cargo test --no-run`` for the
    targets selected by ``type_spec``.
    """

    mode: BuildMode = BuildMode.BUILD
    workspace: Optional[Path] = None
    package: PackageSpec = Field(default_factory=PackageSpec.any)
    features: Optional[FeatureSpec] = None
    release: bool = False
    target_dir: Optional[Path] = None
    bin_name: Optional[str] = None
    example_name: Optional[str] = None
    type_spec: Optional[TypeSpec] = None
    env: Dict[str, str] = Field(default_factory=dict)
    cargo_path: Optional[str] = None
    message_format: Optional[str] = None

    @field_validator("bin_name", "example_name")
    @classmethod
    def validate_target_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Target name must not be blank")
        return v

    @model_validator(mode="after")
    def validate_mode(self) -> "CompileRequest":
        if self.mode == BuildMode.TEST:
            if self.type_spec is None:
                raise ValueError("Test builds require a type_spec")
            if self.bin_name or self.example_name:
                raise ValueError("Test builds select targets through type_spec")
        else:
            if self.type_spec is not None:
                raise ValueError("type_spec is only valid for test builds")
            if self.bin_name and self.example_name:
                raise ValueError("Choose either a binary or an example, not both")
        return self

    @classmethod
    def for_bin(cls, name: str, **kwargs) -> "CompileRequest":
        return cls(mode=BuildMode.BUILD, bin_name=name, **kwargs)

    @classmethod
    def for_example(cls, name: str, **kwargs) -> "CompileRequest":
        return cls(mode=BuildMode.BUILD, example_name=name, **kwargs)

    @classmethod
    def for_tests(cls, type_spec: TypeSpec, **kwargs) -> "CompileRequest":
        return cls(mode=BuildMode.TEST, type_spec=type_spec, **kwargs)

    @property
    def target_name(self) -> Optional[str]:
        return self.bin_name or self.example_name

    def target_args(self) -> List[str]:
        if self.mode == BuildMode.TEST:
            return self.type_spec.cargo_args()
        if self.bin_name:
            return ["--bin", self.bin_name]
        if self.example_name:
            return ["--example", self.example_name]
        return []
