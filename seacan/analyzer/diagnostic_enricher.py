from typing import Optional, Dict, Any, List, Pattern as RePattern
from dataclasses import dataclass, field
import re

from seacan.common.dto.artifact import PackageId, TargetDescriptor
from seacan.common.dto.diagnostic import BuildDiagnostic, DiagnosticLocation
from seacan.common.config.constants import DiagnosticSeverity, DIAGNOSTIC_LEVEL_SEVERITY
from seacan.common.config.logging_config import get_logger


logger = get_logger(__name__)


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class RuleSubject:
    MESSAGE = "message"
    LABEL = "label"
    CHILDREN = "children"


@dataclass
class DiagnosticRule:
    rule_id: str
    name: str
    regex: RePattern
    template: str
    subject: str = RuleSubject.MESSAGE
    severity: Optional[DiagnosticSeverity] = None
    with_location: bool = True
    description: str = ""
    enabled: bool = True


@dataclass
class DiagnosticContext:
    message: str
    level: str
    code: Optional[str]
    label: str
    children: str
    location: Optional[DiagnosticLocation]
    suggestion: Optional[str]

    def subject(self, name: str) -> str:
        if name == RuleSubject.LABEL:
            return self.label
        if name == RuleSubject.CHILDREN:
            return self.children
        return self.message


@dataclass
class EnrichmentStats:
    enriched: int = 0
    fallbacks: int = 0
    rule_hits: Dict[str, int] = field(default_factory=dict)


class DiagnosticEnricher:
    """Turns raw rustc diagnostics into short human-oriented messages.

    Rules are tried in order and the first one whose regex matches decides the
    wording. Anything unrecognised falls back to the compiler's own message
    text, so enrichment can only ever add information.
    """

    GENERIC_RULE_ID = "generic"

    BUILTIN_RULES = [
        DiagnosticRule(
            rule_id="mismatched_types",
            name="Mismatched Types",
            regex=re.compile(r"^expected (?P<expected>.+?), found (?P<found>.+)$"),
            template="mismatched types: expected {expected}, found {found}",
            subject=RuleSubject.LABEL,
            description="Type mismatch described by the primary span label",
        ),
        DiagnosticRule(
            rule_id="mismatched_types",
            name="Mismatched Types",
            regex=re.compile(
                r"expected (?:type )?(?P<expected>[^\n]+?)\n\s*found (?:type )?(?P<found>[^\n]+)"
            ),
            template="mismatched types: expected {expected}, found {found}",
            subject=RuleSubject.CHILDREN,
            description="Type mismatch described by an attached note",
        ),
        DiagnosticRule(
            rule_id="unresolved_name",
            name="Unresolved Name",
            regex=re.compile(
                r"^cannot find (?P<item>[a-z ]+?) `(?P<name>[^`]+)` in (?P<scope>.+)$"
            ),
            template="unresolved {item} `{name}` in {scope}",
        ),
        DiagnosticRule(
            rule_id="unresolved_import",
            name="Unresolved Import",
            regex=re.compile(r"^unresolved imports? (?P<paths>.+)$"),
            template="unresolved import {paths}",
        ),
        DiagnosticRule(
            rule_id="undeclared_module",
            name="Undeclared Crate or Module",
            regex=re.compile(
                r"^failed to resolve: use of (?:undeclared|unresolved) "
                r"(?P<item>crate or module|type|module|crate) `(?P<name>[^`]+)`"
            ),
            template="undeclared {item} `{name}`",
        ),
        DiagnosticRule(
            rule_id="unused_item",
            name="Unused Item",
            regex=re.compile(r"^unused (?P<item>[a-z ]+?): (?P<name>.+)$"),
            template="unused {item} {name}",
        ),
        DiagnosticRule(
            rule_id="dead_code",
            name="Dead Code",
            regex=re.compile(
                r"^(?P<item>[a-z ]+?) `(?P<name>[^`]+)` is never (?P<what>used|read|constructed)$"
            ),
            template="{item} `{name}` is never {what}",
        ),
        DiagnosticRule(
            rule_id="aborting_summary",
            name="Aborting Summary",
            regex=re.compile(r"^aborting due to .+$"),
            template="{0}",
            severity=DiagnosticSeverity.NOTE,
            with_location=False,
            description="Trailing error count, already reported individually",
        ),
        DiagnosticRule(
            rule_id="warnings_summary",
            name="Warnings Summary",
            regex=re.compile(r"^\d+ warnings? emitted$"),
            template="{0}",
            severity=DiagnosticSeverity.NOTE,
            with_location=False,
        ),
    ]

    def __init__(self, custom_rules: Optional[List[DiagnosticRule]] = None):
        self._rules = self.BUILTIN_RULES.copy()
        if custom_rules:
            self._rules = list(custom_rules) + self._rules
        self._stats = EnrichmentStats()

    def enrich(
        self,
        payload: Dict[str, Any],
        package_id: Optional[PackageId] = None,
        target: Optional[TargetDescriptor] = None,
    ) -> BuildDiagnostic:
        try:
            context = self._build_context(payload)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Unreadable diagnostic payload, using compiler text: {e}")
            context = DiagnosticContext(
                message=str(payload.get("message", "")),
                level=str(payload.get("level", "")),
                code=None,
                label="",
                children="",
                location=None,
                suggestion=None,
            )
        severity = self.severity_for_level(context.level)

        rule_id = self.GENERIC_RULE_ID
        summary = context.message
        with_location = True
        try:
            matched = self._match_rule(context)
            if matched is not None:
                rule, summary = matched
                rule_id = rule.rule_id
                with_location = rule.with_location
                if rule.severity is not None:
                    severity = rule.severity
        except (KeyError, IndexError, ValueError) as e:
            logger.warning(f"Diagnostic rule failed, using compiler text: {e}")
            rule_id = self.GENERIC_RULE_ID
            summary = context.message
            with_location = True

        if rule_id == self.GENERIC_RULE_ID:
            self._stats.fallbacks += 1
        else:
            self._stats.rule_hits[rule_id] = self._stats.rule_hits.get(rule_id, 0) + 1
        self._stats.enriched += 1

        return BuildDiagnostic(
            severity=severity,
            rendered_message=self._render(severity, context, summary, with_location),
            rule=rule_id,
            code=context.code,
            location=context.location if with_location else None,
            suggestion=context.suggestion,
            package_id=package_id,
            target=target,
            raw_payload=payload,
        )

    @staticmethod
    def severity_for_level(level: str) -> DiagnosticSeverity:
        severity = DIAGNOSTIC_LEVEL_SEVERITY.get(level)
        if severity is not None:
            return severity
        if level.startswith("error"):
            return DiagnosticSeverity.ERROR
        logger.debug(f"Unknown diagnostic level {level!r}, treating as note")
        return DiagnosticSeverity.NOTE

    def _match_rule(self, context: DiagnosticContext) -> Optional[tuple]:
        for rule in self._rules:
            if not rule.enabled:
                continue
            text = context.subject(rule.subject)
            if not text:
                continue
            match = rule.regex.search(text)
            if match:
                return rule, rule.template.format(match.group(0), **match.groupdict())
        return None

    def _build_context(self, payload: Dict[str, Any]) -> DiagnosticContext:
        spans = [s for s in _as_list(payload.get("spans")) if isinstance(s, dict)]
        primary = next((s for s in spans if s.get("is_primary")), spans[0] if spans else None)

        location = None
        label = ""
        if primary is not None:
            label = str(primary.get("label") or "")
            try:
                location = DiagnosticLocation(
                    file_name=str(primary["file_name"]),
                    line=int(primary["line_start"]),
                    column=int(primary["column_start"]),
                )
            except (KeyError, TypeError, ValueError):
                logger.debug("Primary span lacks a usable location")

        children = [c for c in _as_list(payload.get("children")) if isinstance(c, dict)]
        code = payload.get("code")
        if isinstance(code, dict):
            code = code.get("code")

        return DiagnosticContext(
            message=str(payload.get("message", "")),
            level=str(payload.get("level", "")),
            code=str(code) if code else None,
            label=label,
            children="\n".join(str(c.get("message", "")) for c in children),
            location=location,
            suggestion=self._find_suggestion(children),
        )

    def _find_suggestion(self, children: List[Dict[str, Any]]) -> Optional[str]:
        for child in children:
            for span in _as_list(child.get("spans")):
                if not isinstance(span, dict):
                    continue
                replacement = span.get("suggested_replacement")
                if replacement is not None:
                    return f"{child.get('message', '')}: `{replacement}`"

        for child in children:
            if child.get("level") == "help" and child.get("message"):
                return str(child["message"])
        return None

    def _render(
        self,
        severity: DiagnosticSeverity,
        context: DiagnosticContext,
        summary: str,
        with_location: bool,
    ) -> str:
        header = severity.value
        if context.code:
            header = f"{header}[{context.code}]"
        text = f"{header}: {summary}"
        if with_location and context.location is not None:
            text = f"{context.location}: {text}"
        if context.suggestion:
            text = f"{text}\n  help: {context.suggestion}"
        return text

    def add_rule(self, rule: DiagnosticRule) -> None:
        self._rules.insert(0, rule)
        logger.info(f"Added diagnostic rule: {rule.name}")

    def get_rule(self, rule_id: str) -> Optional[DiagnosticRule]:
        for rule in self._rules:
            if rule.rule_id == rule_id:
                return rule
        return None

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "rule_count": len(self._rules),
            "enabled_count": sum(1 for r in self._rules if r.enabled),
            "enriched": self._stats.enriched,
            "fallbacks": self._stats.fallbacks,
            "rule_hits": dict(self._stats.rule_hits),
        }
