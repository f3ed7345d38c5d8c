from typing import Optional, Dict, Any, List, Union, TypeVar
import asyncio
import copy
from pathlib import Path

from pydantic import ValidationError

from seacan.builder.build_executor import BuildExecutor, BuildResult, DiagnosticCallback
from seacan.builder.test_introspector import TestIntrospector, DiscoveryResult
from seacan.common.dto.artifact import ExecutableArtifact
from seacan.common.dto.request import CompileRequest, PackageSpec, FeatureSpec
from seacan.common.dto.selection import NameSpec, TypeSpec
from seacan.common.config.constants import BuildMode, TargetKind
from seacan.common.config.settings import Settings, get_settings
from seacan.common.config.logging_config import get_logger
from seacan.common.exceptions.base_exceptions import ValidationException
from seacan.common.exceptions.build_exceptions import BuildException


logger = get_logger(__name__)

CompilerT = TypeVar("CompilerT", bound="_Compiler")


def make_request(**fields: Any) -> CompileRequest:
    try:
        return CompileRequest(**fields)
    except ValidationError as e:
        raise ValidationException.from_validation_error(e, "compile request") from e


class _Compiler:
    """Shared configuration surface of the two compilers.

    A compiler is immutable: each ``with_*`` call validates and returns a new
    instance, so one configured compiler can safely be reused.
    """

    def __init__(
        self,
        request: CompileRequest,
        settings: Optional[Settings] = None,
        on_diagnostic: Optional[DiagnosticCallback] = None,
    ):
        self._request = request
        self._settings = settings or get_settings()
        self._on_diagnostic = on_diagnostic

    @property
    def request(self) -> CompileRequest:
        return self._request

    def _replace(self: CompilerT, **changes: Any) -> CompilerT:
        fields: Dict[str, Any] = dict(self._request)
        fields.update(changes)
        clone = copy.copy(self)
        clone._request = make_request(**fields)
        return clone

    def with_workspace(self: CompilerT, path: Union[str, Path]) -> CompilerT:
        return self._replace(workspace=Path(path))

    def with_package(self: CompilerT, package: PackageSpec) -> CompilerT:
        return self._replace(package=package)

    def with_features(self: CompilerT, features: FeatureSpec) -> CompilerT:
        return self._replace(features=features)

    def with_release(self: CompilerT, release: bool = True) -> CompilerT:
        return self._replace(release=release)

    def with_target_dir(self: CompilerT, path: Union[str, Path]) -> CompilerT:
        return self._replace(target_dir=Path(path))

    def with_env(self: CompilerT, **env: str) -> CompilerT:
        return self._replace(env={**self._request.env, **env})

    def with_cargo(self: CompilerT, cargo_path: str) -> CompilerT:
        return self._replace(cargo_path=cargo_path)

    def with_diagnostic_callback(self: CompilerT, callback: Optional[DiagnosticCallback]) -> CompilerT:
        clone = self._replace()
        clone._on_diagnostic = callback
        return clone

    def _executor(self) -> BuildExecutor:
        return BuildExecutor(settings=self._settings, on_diagnostic=self._on_diagnostic)

    async def build_async(self) -> BuildResult:
        return await self._executor().execute(self._request)


class BinCompiler(_Compiler):
    """Builds one binary or example and returns its executable."""

    @classmethod
    def bin(cls, name: str, **kwargs: Any) -> "BinCompiler":
        return cls(make_request(mode=BuildMode.BUILD, bin_name=name), **kwargs)

    @classmethod
    def example(cls, name: str, **kwargs: Any) -> "BinCompiler":
        return cls(make_request(mode=BuildMode.BUILD, example_name=name), **kwargs)

    @property
    def target_kind(self) -> TargetKind:
        return TargetKind.EXAMPLE if self._request.example_name else TargetKind.BIN

    async def compile_async(self) -> ExecutableArtifact:
        result = await self.build_async()
        artifact = self.select_executable(result.artifacts)
        logger.info(f"Built {artifact.display_name} at {artifact.executable}")
        return artifact

    def compile(self) -> ExecutableArtifact:
        return asyncio.run(self.compile_async())

    def select_executable(self, artifacts: List[ExecutableArtifact]) -> ExecutableArtifact:
        name = self._request.target_name
        candidates = [
            a for a in artifacts
            if a.is_executable and a.target.target_kind == self.target_kind and a.target.name == name
        ]
        if len(candidates) == 1:
            return candidates[0]

        package = self._request.package.as_repr()
        if not candidates:
            raise BuildException(
                message=f"cargo reported success but produced no executable for `{name}`",
                package=package,
                details={"artifact_count": len(artifacts)},
            )
        raise BuildException(
            message=f"Expected one executable for `{name}`, cargo produced {len(candidates)}",
            package=package,
            details={"executables": [str(a.executable) for a in candidates]},
        )


class TestCompiler(_Compiler):
    """Builds test harnesses without running them and lists their tests."""

    __test__ = False

    def __init__(
        self,
        name_spec: NameSpec,
        type_spec: TypeSpec,
        request: Optional[CompileRequest] = None,
        settings: Optional[Settings] = None,
        on_diagnostic: Optional[DiagnosticCallback] = None,
    ):
        super().__init__(
            request or make_request(mode=BuildMode.TEST, type_spec=type_spec),
            settings=settings,
            on_diagnostic=on_diagnostic,
        )
        if self._request.type_spec != type_spec:
            raise ValueError("request.type_spec does not match type_spec")
        self._name_spec = name_spec

    @property
    def name_spec(self) -> NameSpec:
        return self._name_spec

    @property
    def type_spec(self) -> TypeSpec:
        return self._request.type_spec

    def _introspector(self) -> TestIntrospector:
        return TestIntrospector(
            settings=self._settings,
            working_dir=self._request.workspace,
            env=self._request.env,
        )

    async def compile_async(self) -> DiscoveryResult:
        build = await self.build_async()
        discovery = await self._introspector().discover(build.artifacts, self._name_spec, self.type_spec)
        discovery.build = build
        return discovery

    def compile(self) -> DiscoveryResult:
        return asyncio.run(self.compile_async())
