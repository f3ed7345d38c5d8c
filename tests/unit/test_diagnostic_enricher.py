"""Unit tests for DiagnosticEnricher."""

import re

import pytest

from seacan.analyzer.diagnostic_enricher import DiagnosticEnricher, DiagnosticRule
from seacan.common.config.constants import DiagnosticSeverity


class TestDiagnosticEnricher:
    """Tests for enriching rustc diagnostics."""

    @pytest.fixture
    def enricher(self) -> DiagnosticEnricher:
        return DiagnosticEnricher()

    def test_mismatched_types_from_label(self, enricher: DiagnosticEnricher, messages) -> None:
        payload = messages.diagnostic(
            "error",
            "mismatched types",
            code="E0308",
            line=3,
            column=18,
            label="expected `u32`, found `&str`",
        )

        diagnostic = enricher.enrich(payload)

        assert diagnostic.severity == DiagnosticSeverity.ERROR
        assert diagnostic.rule == "mismatched_types"
        assert diagnostic.code == "E0308"
        assert str(diagnostic.location) == "src/main.rs:3:18"
        assert diagnostic.rendered_message == (
            "src/main.rs:3:18: error[E0308]: mismatched types: expected `u32`, found `&str`"
        )
        assert diagnostic.raw_payload is payload

    def test_mismatched_types_from_note(self, enricher: DiagnosticEnricher, messages) -> None:
        payload = messages.diagnostic(
            "error",
            "mismatched types",
            code="E0308",
            children=[messages.child("note", "expected type `u32`\n   found reference `&'static str`")],
        )

        diagnostic = enricher.enrich(payload)

        assert diagnostic.rule == "mismatched_types"
        assert "expected `u32`, found reference `&'static str`" in diagnostic.rendered_message

    def test_unresolved_name(self, enricher: DiagnosticEnricher, messages) -> None:
        payload = messages.diagnostic("error", "cannot find value `frob` in this scope", code="E0425")

        diagnostic = enricher.enrich(payload)

        assert diagnostic.rule == "unresolved_name"
        assert diagnostic.rendered_message.endswith("unresolved value `frob` in this scope")

    def test_unresolved_import(self, enricher: DiagnosticEnricher, messages) -> None:
        diagnostic = enricher.enrich(messages.diagnostic("error", "unresolved import `foo::bar`"))

        assert diagnostic.rule == "unresolved_import"

    def test_undeclared_module(self, enricher: DiagnosticEnricher, messages) -> None:
        payload = messages.diagnostic(
            "error", "failed to resolve: use of undeclared crate or module `serde_json`", code="E0433"
        )

        diagnostic = enricher.enrich(payload)

        assert diagnostic.rule == "undeclared_module"
        assert "undeclared crate or module `serde_json`" in diagnostic.rendered_message

    def test_unused_variable_warning_with_suggestion(self, enricher: DiagnosticEnricher, messages) -> None:
        payload = messages.diagnostic(
            "warning",
            "unused variable: `x`",
            children=[
                messages.child("note", "`#[warn(unused_variables)]` on by default"),
                messages.child(
                    "help",
                    "if this is intentional, prefix it with an underscore",
                    suggested_replacement="_x",
                ),
            ],
        )

        diagnostic = enricher.enrich(payload)

        assert diagnostic.severity == DiagnosticSeverity.WARNING
        assert diagnostic.rule == "unused_item"
        assert diagnostic.suggestion == "if this is intentional, prefix it with an underscore: `_x`"
        assert diagnostic.rendered_message.endswith("help: if this is intentional, prefix it with an underscore: `_x`")

    def test_help_child_used_when_no_replacement(self, enricher: DiagnosticEnricher, messages) -> None:
        payload = messages.diagnostic(
            "error",
            "something odd",
            children=[messages.child("help", "try turning it off and on again")],
        )

        assert enricher.enrich(payload).suggestion == "try turning it off and on again"

    @pytest.mark.parametrize(
        "message",
        [
            "aborting due to 1 previous error",
            "aborting due to 2 previous errors; 1 warning emitted",
            "aborting due to previous error",
        ],
    )
    def test_aborting_summary_is_demoted(self, enricher: DiagnosticEnricher, messages, message: str) -> None:
        diagnostic = enricher.enrich(messages.diagnostic("error", message, file_name=None))

        assert diagnostic.severity == DiagnosticSeverity.NOTE
        assert diagnostic.rule == "aborting_summary"
        assert not diagnostic.is_error

    def test_warnings_summary_is_demoted(self, enricher: DiagnosticEnricher, messages) -> None:
        diagnostic = enricher.enrich(messages.diagnostic("warning", "3 warnings emitted", file_name=None))

        assert diagnostic.severity == DiagnosticSeverity.NOTE
        assert diagnostic.rule == "warnings_summary"

    def test_generic_fallback_keeps_message(self, enricher: DiagnosticEnricher, messages) -> None:
        payload = messages.diagnostic("error", "the trait bound `Foo: Bar` is not satisfied", code="E0277")

        diagnostic = enricher.enrich(payload)

        assert diagnostic.rule == "generic"
        assert "the trait bound `Foo: Bar` is not satisfied" in diagnostic.rendered_message

    @pytest.mark.parametrize(
        "level,severity",
        [
            ("error", DiagnosticSeverity.ERROR),
            ("error: internal compiler error", DiagnosticSeverity.ERROR),
            ("warning", DiagnosticSeverity.WARNING),
            ("note", DiagnosticSeverity.NOTE),
            ("help", DiagnosticSeverity.NOTE),
            ("failure-note", DiagnosticSeverity.NOTE),
        ],
    )
    def test_severity_map(self, level: str, severity: DiagnosticSeverity) -> None:
        assert DiagnosticEnricher.severity_for_level(level) == severity

    def test_payload_without_spans(self, enricher: DiagnosticEnricher) -> None:
        diagnostic = enricher.enrich({"message": "linking with `cc` failed", "level": "error"})

        assert diagnostic.location is None
        assert diagnostic.rendered_message == "error: linking with `cc` failed"

    @pytest.mark.parametrize(
        "extra",
        [
            {"spans": 5},
            {"children": 7},
            {"spans": "src/main.rs", "children": {"message": "help"}},
            {"children": [{"level": "help", "message": "x", "spans": 3}]},
        ],
    )
    def test_non_list_spans_and_children(self, enricher: DiagnosticEnricher, extra) -> None:
        payload = {"message": "boom", "level": "error", **extra}

        diagnostic = enricher.enrich(payload)

        assert diagnostic.rule == "generic"
        assert diagnostic.is_error
        assert diagnostic.location is None
        assert diagnostic.rendered_message.startswith("error: boom")
        assert diagnostic.raw_payload == payload

    def test_broken_custom_rule_falls_back(self, messages) -> None:
        rule = DiagnosticRule(
            rule_id="broken",
            name="Broken",
            regex=re.compile(r"^mismatched types$"),
            template="{missing_group}",
        )
        enricher = DiagnosticEnricher(custom_rules=[rule])

        diagnostic = enricher.enrich(messages.diagnostic("error", "mismatched types"))

        assert diagnostic.rule == "generic"
        assert diagnostic.rendered_message.endswith("error: mismatched types")

    def test_add_rule_takes_precedence(self, enricher: DiagnosticEnricher, messages) -> None:
        enricher.add_rule(DiagnosticRule(
            rule_id="lifetime",
            name="Lifetime",
            regex=re.compile(r"^`(?P<name>\w+)` does not live long enough$"),
            template="`{name}` is dropped too early",
        ))

        diagnostic = enricher.enrich(messages.diagnostic("error", "`x` does not live long enough"))

        assert diagnostic.rule == "lifetime"
        assert diagnostic.rendered_message.endswith("`x` is dropped too early")
        assert enricher.get_rule("lifetime") is not None

    def test_statistics(self, enricher: DiagnosticEnricher, messages) -> None:
        enricher.enrich(messages.diagnostic("warning", "unused import: `std::fmt`"))
        enricher.enrich(messages.diagnostic("error", "something new"))

        stats = enricher.get_statistics()

        assert stats["enriched"] == 2
        assert stats["fallbacks"] == 1
        assert stats["rule_hits"] == {"unused_item": 1}
