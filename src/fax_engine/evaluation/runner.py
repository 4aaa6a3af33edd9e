"""Replays a labelled dataset of fax texts through the intent extractor."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from fax_engine.evaluation.metrics import IntentCaseResult
from fax_engine.intent.extractor import IntentExtractor
from fax_engine.models.domain import BoundingBox, VisualAnnotation
from fax_engine.models.enums import AnnotationType
from fax_engine.models.parameters import ShoppingParameters
from fax_engine.models.schemas import AnnotationSpec, IntentEvalCase

_CASES = TypeAdapter(list[IntentEvalCase])


def load_dataset(path: Path) -> list[IntentEvalCase]:
    """Load and validate the evaluation dataset."""
    with open(path) as f:
        return _CASES.validate_python(json.load(f))


def to_annotation(spec: AnnotationSpec) -> VisualAnnotation:
    x, y, width, height = (spec.bounding_box + [0.0, 0.0, 0.0, 0.0])[:4]
    return VisualAnnotation(
        type=AnnotationType(spec.type),
        bounding_box=BoundingBox(x=x, y=y, width=width, height=height),
        associated_text=spec.associated_text,
        confidence=spec.confidence,
    )


async def run_single_case(extractor: IntentExtractor, case: IntentEvalCase) -> IntentCaseResult:
    try:
        result = await extractor.extract_intent(
            case.text, [to_annotation(a) for a in case.annotations]
        )
    except Exception as e:
        return IntentCaseResult(
            case_id=case.id,
            text=case.text,
            category=case.category,
            expected_intent=case.expected_intent,
            actual_intent="error",
            confidence=0.0,
            parameter_extraction=0.0,
            intent_correct=False,
            expected_sub_intent=case.expected_sub_intent,
            error=str(e),
        )

    sub_intent = None
    if isinstance(result.parameters, ShoppingParameters) and result.parameters.sub_intent:
        sub_intent = str(result.parameters.sub_intent)

    return IntentCaseResult(
        case_id=case.id,
        text=case.text,
        category=case.category,
        expected_intent=case.expected_intent,
        actual_intent=str(result.intent),
        confidence=result.confidence,
        parameter_extraction=result.confidence_breakdown.parameter_extraction,
        intent_correct=str(result.intent) == case.expected_intent,
        expected_sub_intent=case.expected_sub_intent,
        actual_sub_intent=sub_intent,
        alternatives=[str(a.intent) for a in result.alternative_intents],
    )


async def run_intent_evaluation(
    extractor: IntentExtractor | None = None,
    dataset: list[IntentEvalCase] | None = None,
    dataset_path: Path | None = None,
) -> list[IntentCaseResult]:
    """Run every case through the extractor, in dataset order."""
    if dataset is None and dataset_path is None:
        raise ValueError("either dataset or dataset_path is required")
    extractor = extractor or IntentExtractor()
    cases = dataset if dataset is not None else load_dataset(dataset_path)
    return [await run_single_case(extractor, case) for case in cases]
