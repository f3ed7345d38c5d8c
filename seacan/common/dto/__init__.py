from seacan.common.dto.base import BaseDTO
from seacan.common.dto.artifact import (
    PackageId,
    TargetDescriptor,
    ArtifactProfile,
    ExecutableArtifact,
)
from seacan.common.dto.diagnostic import (
    DiagnosticLocation,
    BuildDiagnostic,
    BuildScriptOutput,
)
from seacan.common.dto.selection import NameSpec, TypeSpec
from seacan.common.dto.test_result import TestFn, Artifact
from seacan.common.dto.request import (
    PackageSpec,
    PackageSpecKind,
    FeatureSpec,
    CompileRequest,
)

__all__ = [
    "BaseDTO",
    "PackageId",
    "TargetDescriptor",
    "ArtifactProfile",
    "ExecutableArtifact",
    "DiagnosticLocation",
    "BuildDiagnostic",
    "BuildScriptOutput",
    "NameSpec",
    "TypeSpec",
    "TestFn",
    "Artifact",
    "PackageSpec",
    "PackageSpecKind",
    "FeatureSpec",
    "CompileRequest",
]
