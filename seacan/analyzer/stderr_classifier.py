from typing import Optional, List, Pattern
from dataclasses import dataclass
from enum import Enum
import re

from seacan.common.dto.diagnostic import BuildDiagnostic, strip_ansi
from seacan.common.config.constants import DiagnosticSeverity
from seacan.common.config.logging_config import get_logger


logger = get_logger(__name__)


class StderrCategory(str, Enum):
    TARGET_NOT_FOUND = "target_not_found"
    PACKAGE_NOT_FOUND = "package_not_found"
    CARGO_ERROR = "cargo_error"
    UNKNOWN = "unknown"


@dataclass
class StderrPattern:
    name: str
    pattern: Pattern
    category: StderrCategory


@dataclass
class StderrClassification:
    category: StderrCategory
    message: str
    subject: Optional[str] = None
    pattern_name: Optional[str] = None

    @property
    def is_explained(self) -> bool:
        return self.category != StderrCategory.UNKNOWN


class StderrClassifier:
    """Reads cargo's own stderr for failures that never reach the JSON stream.

    Cargo reports problems with the command line itself (an unknown target,
    a package spec matching nothing) as plain ``error:`` lines before any
    compilation starts.
    """

    DEFAULT_PATTERNS = [
        StderrPattern(
            "no_target_named",
            re.compile(r"^error: no \w+ target named `(?P<subject>[^`]*)`", re.MULTILINE),
            StderrCategory.TARGET_NOT_FOUND,
        ),
        StderrPattern(
            "no_target_matches",
            re.compile(r"^error: no \w+ target matches pattern `(?P<subject>[^`]*)`", re.MULTILINE),
            StderrCategory.TARGET_NOT_FOUND,
        ),
        StderrPattern(
            "package_spec_unmatched",
            re.compile(
                r"^error: package ID specification `(?P<subject>[^`]*)` did not match any packages",
                re.MULTILINE,
            ),
            StderrCategory.PACKAGE_NOT_FOUND,
        ),
        StderrPattern(
            "package_not_in_workspace",
            re.compile(r"^error: package\(s\) `(?P<subject>[^`]*)` not found in workspace", re.MULTILINE),
            StderrCategory.PACKAGE_NOT_FOUND,
        ),
        StderrPattern(
            "cargo_error",
            re.compile(r"^error(?:\[\w+\])?: (?P<subject>.+)$", re.MULTILINE),
            StderrCategory.CARGO_ERROR,
        ),
    ]

    def __init__(self, extra_patterns: Optional[List[StderrPattern]] = None):
        self._patterns = list(extra_patterns or []) + self.DEFAULT_PATTERNS

    def classify(self, stderr: str) -> StderrClassification:
        text = strip_ansi(stderr or "")
        for stderr_pattern in self._patterns:
            match = stderr_pattern.pattern.search(text)
            if match:
                line = match.group(0).strip()
                logger.debug(f"Cargo stderr matched {stderr_pattern.name}: {line}")
                return StderrClassification(
                    category=stderr_pattern.category,
                    message=line,
                    subject=match.group("subject"),
                    pattern_name=stderr_pattern.name,
                )

        tail = "\n".join(line for line in text.strip().splitlines()[-5:])
        return StderrClassification(category=StderrCategory.UNKNOWN, message=tail)

    def synthesize_diagnostic(
        self,
        stderr: str,
        exit_code: Optional[int] = None,
        classification: Optional[StderrClassification] = None,
    ) -> BuildDiagnostic:
        classification = classification or self.classify(stderr)
        message = classification.message
        if not message:
            message = f"cargo exited with status {exit_code}" if exit_code is not None else "cargo failed"
        elif not message.startswith("error"):
            message = f"error: {message}"

        return BuildDiagnostic(
            severity=DiagnosticSeverity.ERROR,
            rendered_message=message,
            rule=classification.category.value,
        )
