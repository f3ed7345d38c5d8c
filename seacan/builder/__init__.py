from seacan.builder.message_parser import (
    MessageStreamParser,
    BuildEvent,
    ArtifactProduced,
    CompilerMessage,
    BuildScriptExecuted,
    BuildFinished,
    MalformedMessage,
)
from seacan.builder.build_executor import BuildExecutor, BuildResult, BuildExecutionContext
from seacan.builder.test_introspector import (
    TestIntrospector,
    DiscoveryResult,
    ListingParser,
    ListingParseError,
)
from seacan.builder.compilers import BinCompiler, TestCompiler

__all__ = [
    "MessageStreamParser",
    "BuildEvent",
    "ArtifactProduced",
    "CompilerMessage",
    "BuildScriptExecuted",
    "BuildFinished",
    "MalformedMessage",
    "BuildExecutor",
    "BuildResult",
    "BuildExecutionContext",
    "TestIntrospector",
    "DiscoveryResult",
    "ListingParser",
    "ListingParseError",
    "BinCompiler",
    "TestCompiler",
]
