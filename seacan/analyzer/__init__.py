from seacan.analyzer.diagnostic_enricher import DiagnosticEnricher, DiagnosticRule
from seacan.analyzer.stderr_classifier import (
    StderrClassifier,
    StderrClassification,
    StderrCategory,
)

__all__ = [
    "DiagnosticEnricher",
    "DiagnosticRule",
    "StderrClassifier",
    "StderrClassification",
    "StderrCategory",
]
