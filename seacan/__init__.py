from seacan.common import config
from seacan.common import dto
from seacan.common import exceptions
from seacan import builder
from seacan import analyzer
from seacan.builder.compilers import BinCompiler, TestCompiler
from seacan.builder.test_introspector import DiscoveryResult
from seacan.common.dto import (
    NameSpec,
    TypeSpec,
    PackageSpec,
    FeatureSpec,
    ExecutableArtifact,
    Artifact,
    TestFn,
    BuildDiagnostic,
)

__version__ = "0.1.0"
__all__ = [
    "config",
    "dto",
    "exceptions",
    "builder",
    "analyzer",
    "BinCompiler",
    "TestCompiler",
    "DiscoveryResult",
    "NameSpec",
    "TypeSpec",
    "PackageSpec",
    "FeatureSpec",
    "ExecutableArtifact",
    "Artifact",
    "TestFn",
    "BuildDiagnostic",
]
