"""Accuracy metrics for offline intent-classification runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import groupby

from fax_engine.models.enums import Intent


@dataclass
class IntentCaseResult:
    """Result of replaying a single labelled fax text."""

    case_id: str
    text: str
    category: str
    expected_intent: str
    actual_intent: str
    confidence: float
    parameter_extraction: float
    intent_correct: bool
    expected_sub_intent: str | None = None
    actual_sub_intent: str | None = None
    alternatives: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def sub_intent_correct(self) -> bool | None:
        if self.expected_sub_intent is None:
            return None
        return self.intent_correct and self.actual_sub_intent == self.expected_sub_intent


def compute_metrics(results: list[IntentCaseResult]) -> dict:
    """Overall accuracy, sub-intent accuracy, averages and error count."""
    total = len(results)
    if total == 0:
        return _empty_metrics()

    valid = [r for r in results if r.error is None]
    errors = [r for r in results if r.error is not None]

    intent_accuracy = sum(r.intent_correct for r in valid) / len(valid) if valid else 0.0

    with_sub = [r for r in valid if r.expected_sub_intent is not None]
    sub_intent_accuracy = (
        sum(1 for r in with_sub if r.sub_intent_correct) / len(with_sub) if with_sub else 0.0
    )

    avg_confidence = sum(r.confidence for r in valid) / len(valid) if valid else 0.0
    avg_completeness = sum(r.parameter_extraction for r in valid) / len(valid) if valid else 0.0

    # Confidently wrong answers are the ones that skip clarification
    confident_errors = sum(1 for r in valid if not r.intent_correct and r.confidence >= 0.7)

    return {
        "total_cases": total,
        "valid_cases": len(valid),
        "intent_accuracy": intent_accuracy,
        "sub_intent_accuracy": sub_intent_accuracy,
        "avg_confidence": avg_confidence,
        "avg_parameter_extraction": avg_completeness,
        "confident_error_count": confident_errors,
        "error_count": len(errors),
    }


def build_confusion_matrix(results: list[IntentCaseResult]) -> dict[str, dict[str, int]]:
    """Rows are expected intents, columns are predicted intents."""
    labels = [i.value for i in Intent]
    matrix: dict[str, dict[str, int]] = {exp: {act: 0 for act in labels} for exp in labels}

    for r in results:
        if r.error is not None:
            continue
        if r.expected_intent in matrix and r.actual_intent in labels:
            matrix[r.expected_intent][r.actual_intent] += 1

    return matrix


def compute_intent_metrics(results: list[IntentCaseResult]) -> dict[str, dict]:
    """Per expected-intent accuracy and confidence."""
    valid = [r for r in results if r.error is None]
    if not valid:
        return {}

    by_intent: dict[str, dict] = {}
    sorted_results = sorted(valid, key=lambda r: r.expected_intent)

    for intent, group in groupby(sorted_results, key=lambda r: r.expected_intent):
        intent_results = list(group)
        n = len(intent_results)
        by_intent[intent] = {
            "count": n,
            "accuracy": sum(r.intent_correct for r in intent_results) / n,
            "avg_confidence": sum(r.confidence for r in intent_results) / n,
            "avg_parameter_extraction": sum(r.parameter_extraction for r in intent_results) / n,
        }

    return by_intent


def _empty_metrics() -> dict:
    return {
        "total_cases": 0,
        "valid_cases": 0,
        "intent_accuracy": 0.0,
        "sub_intent_accuracy": 0.0,
        "avg_confidence": 0.0,
        "avg_parameter_extraction": 0.0,
        "confident_error_count": 0,
        "error_count": 0,
    }
