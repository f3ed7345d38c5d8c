from seacan.common.config.settings import Settings, get_settings
from seacan.common.config.logging_config import (
    configure_logging,
    get_logger,
    get_build_logger,
    get_listing_logger,
)
from seacan.common.config.constants import (
    BuildMode,
    MessageReason,
    TargetKind,
    DiagnosticSeverity,
    TestFnKind,
    NameSpecKind,
    TypeSpecKind,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "get_build_logger",
    "get_listing_logger",
    "BuildMode",
    "MessageReason",
    "TargetKind",
    "DiagnosticSeverity",
    "TestFnKind",
    "NameSpecKind",
    "TypeSpecKind",
]
