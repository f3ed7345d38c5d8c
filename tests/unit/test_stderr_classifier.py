"""Unit tests for StderrClassifier."""

import pytest

from seacan.analyzer.stderr_classifier import StderrCategory, StderrClassifier
from seacan.common.config.constants import DiagnosticSeverity


class TestStderrClassifier:
    """Tests for classifying cargo's plain-text errors."""

    @pytest.fixture
    def classifier(self) -> StderrClassifier:
        return StderrClassifier()

    def test_target_not_found(self, classifier: StderrClassifier) -> None:
        stderr = "error: no bin target named `nope`.\n\n\tDid you mean `tool`?\n"

        result = classifier.classify(stderr)

        assert result.category == StderrCategory.TARGET_NOT_FOUND
        assert result.subject == "nope"
        assert result.is_explained

    def test_example_target_not_found_with_colour(self, classifier: StderrClassifier) -> None:
        stderr = "\x1b[1m\x1b[31merror\x1b[0m: no example target named `walkthrough`\n"

        result = classifier.classify(stderr)

        assert result.category == StderrCategory.TARGET_NOT_FOUND
        assert result.subject == "walkthrough"

    def test_package_spec_unmatched(self, classifier: StderrClassifier) -> None:
        stderr = "error: package ID specification `ghost` did not match any packages\n"

        result = classifier.classify(stderr)

        assert result.category == StderrCategory.PACKAGE_NOT_FOUND
        assert result.subject == "ghost"

    def test_package_not_in_workspace(self, classifier: StderrClassifier) -> None:
        stderr = "error: package(s) `ghost` not found in workspace `/work`\n"

        assert classifier.classify(stderr).category == StderrCategory.PACKAGE_NOT_FOUND

    def test_generic_cargo_error(self, classifier: StderrClassifier) -> None:
        stderr = "    Updating crates.io index\nerror: failed to select a version for `serde`.\n"

        result = classifier.classify(stderr)

        assert result.category == StderrCategory.CARGO_ERROR
        assert result.message == "error: failed to select a version for `serde`."

    def test_unexplained_output(self, classifier: StderrClassifier) -> None:
        result = classifier.classify("   Compiling demo v0.1.0\n")

        assert result.category == StderrCategory.UNKNOWN
        assert not result.is_explained
        assert result.message == "Compiling demo v0.1.0"

    def test_synthesized_diagnostic_is_an_error(self, classifier: StderrClassifier) -> None:
        diagnostic = classifier.synthesize_diagnostic("error: no bin target named `nope`\n", exit_code=101)

        assert diagnostic.severity == DiagnosticSeverity.ERROR
        assert diagnostic.rule == "target_not_found"
        assert diagnostic.rendered_message == "error: no bin target named `nope`"

    def test_synthesized_diagnostic_for_empty_stderr(self, classifier: StderrClassifier) -> None:
        diagnostic = classifier.synthesize_diagnostic("", exit_code=101)

        assert diagnostic.is_error
        assert diagnostic.rendered_message == "cargo exited with status 101"
