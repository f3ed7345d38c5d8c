from enum import Enum
from typing import Final


class BuildMode(str, Enum):
    BUILD = "build"
    TEST = "test"


class MessageReason(str, Enum):
    COMPILER_ARTIFACT = "compiler-artifact"
    COMPILER_MESSAGE = "compiler-message"
    BUILD_SCRIPT_EXECUTED = "build-script-executed"
    BUILD_FINISHED = "build-finished"


class TargetKind(str, Enum):
    LIB = "lib"
    BIN = "bin"
    EXAMPLE = "example"
    TEST = "test"
    BENCH = "bench"
    DOCTEST = "doctest"
    CUSTOM_BUILD = "custom-build"


class DiagnosticSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


class TestFnKind(str, Enum):
    __test__ = False

    TEST = "test"
    BENCHMARK = "benchmark"
    IGNORED = "ignored"


class NameSpecKind(str, Enum):
    EXACT = "exact"
    WILDCARD = "wildcard"
    SUBSTRING = "substring"
    ANY = "any"


class TypeSpecKind(str, Enum):
    LIB = "lib"
    BIN = "bin"
    EXAMPLE = "example"
    UNIT = "unit"
    INTEGRATION = "integration"
    BENCH = "bench"
    DOC = "doc"
    ALL = "all"


# Cargo reports crate types as target kinds for library targets.
LIBRARY_KIND_ALIASES: Final[frozenset] = frozenset(
    {"lib", "rlib", "dylib", "cdylib", "staticlib", "proc-macro"}
)

EXECUTABLE_TARGET_KINDS: Final[frozenset] = frozenset(
    {TargetKind.BIN, TargetKind.EXAMPLE, TargetKind.TEST, TargetKind.BENCH}
)

DIAGNOSTIC_LEVEL_SEVERITY: Final[dict] = {
    "error": DiagnosticSeverity.ERROR,
    "error: internal compiler error": DiagnosticSeverity.ERROR,
    "warning": DiagnosticSeverity.WARNING,
    "note": DiagnosticSeverity.NOTE,
    "help": DiagnosticSeverity.NOTE,
    "failure-note": DiagnosticSeverity.NOTE,
}

DEFAULT_CARGO_PATH: Final[str] = "cargo"
# Keep rustc's colour codes in the rendered field of JSON diagnostics.
DEFAULT_MESSAGE_FORMAT: Final[str] = "json-diagnostic-rendered-ansi"
PACKAGE_SPEC_ANY: Final[str] = "*"

LISTING_ARGS: Final[tuple] = ("--list", "--format=terse")
LISTING_IGNORED_ARG: Final[str] = "--ignored"
EXACT_FILTER_ARG: Final[str] = "--exact"

BUILD_TIMEOUT_SECONDS: Final[int] = 3600
LISTING_TIMEOUT_SECONDS: Final[int] = 60
MAX_PARALLEL_LISTINGS: Final[int] = 4
STDERR_EXCERPT_CHARS: Final[int] = 4000

# Per-line read limit for subprocess pipes.
STREAM_LINE_LIMIT_BYTES: Final[int] = 16 * 1024 * 1024
