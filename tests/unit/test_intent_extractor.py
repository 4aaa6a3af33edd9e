"""Tests for multi-detector aggregation."""

import pytest

from conftest import FakeAuditSink, circle, make_interpretation
from fax_engine.intent.extractor import IntentExtractor
from fax_engine.models.domain import RawIntentSignal
from fax_engine.models.enums import Intent, ShoppingSubIntent
from fax_engine.models.parameters import ContactParameters, EmailParameters, parameters_for
from fax_engine.observability.audit import AuditRecorder


class FixedDetector:
    def __init__(self, intent, confidence, params=None):
        self.intent = intent
        self.confidence = confidence
        self.params = params or parameters_for(intent)
        self.seen = []

    def detect(self, text, annotations, reference_id=None):
        self.seen.append((text, reference_id))
        return RawIntentSignal(self.intent, self.confidence, self.params)


class BrokenDetector:
    intent = Intent.PAYMENT_REGISTRATION

    def detect(self, text, annotations, reference_id=None):
        raise ValueError("regex exploded")


async def test_tie_goes_to_earlier_detector():
    extractor = IntentExtractor(
        detectors=[
            FixedDetector(Intent.EMAIL, 0.6),
            FixedDetector(Intent.SHOPPING, 0.6),
        ]
    )
    result = await extractor.extract_intent("anything")
    assert result.intent == Intent.EMAIL
    assert [a.intent for a in result.alternative_intents] == [Intent.SHOPPING]


async def test_alternatives_sorted_thresholded_and_capped():
    extractor = IntentExtractor(
        detectors=[
            FixedDetector(Intent.EMAIL, 0.35),
            FixedDetector(Intent.SHOPPING, 0.9),
            FixedDetector(Intent.AI_CHAT, 0.5),
            FixedDetector(Intent.REPLY, 0.3),
            FixedDetector(Intent.PAYMENT_REGISTRATION, 0.45),
        ]
    )
    result = await extractor.extract_intent("anything")
    assert result.intent == Intent.SHOPPING
    assert [(a.intent, a.confidence) for a in result.alternative_intents] == [
        (Intent.AI_CHAT, 0.5),
        (Intent.PAYMENT_REGISTRATION, 0.45),
    ]
    assert result.alternative_intents[0].reason.startswith("Contains question patterns")


async def test_confidences_are_clamped():
    extractor = IntentExtractor(
        detectors=[FixedDetector(Intent.REPLY, 1.6), FixedDetector(Intent.EMAIL, -0.2)]
    )
    result = await extractor.extract_intent("anything")
    assert result.confidence == 1.0
    assert [s.confidence for s in result.raw_signals] == [1.0, 0.0]
    assert result.confidence_breakdown.overall == 1.0
    assert result.confidence_breakdown.intent_classification == 1.0


async def test_failing_detector_yields_zero_signal():
    extractor = IntentExtractor(
        detectors=[BrokenDetector(), FixedDetector(Intent.EMAIL, 0.4)]
    )
    result = await extractor.extract_intent("anything")
    assert result.intent == Intent.EMAIL
    assert result.raw_signals[0].confidence == 0.0
    assert result.raw_signals[0].intent == Intent.PAYMENT_REGISTRATION


async def test_detectors_see_lowercased_text_and_reference():
    detector = FixedDetector(Intent.EMAIL, 0.5)
    await IntentExtractor(detectors=[detector]).extract_intent("Ref: FX-2025-000042 HELLO")
    assert detector.seen == [("ref: fx-2025-000042 hello", "FX-2025-000042")]


async def test_reference_falls_back_to_existing_partial():
    partial = make_interpretation(reference_id="FX-2025-000777")
    result = await IntentExtractor().extract_intent("please call me", existing_partial=partial)
    assert result.intent == Intent.REPLY
    assert result.parameters.reference_id == "FX-2025-000777"
    assert result.confidence == pytest.approx(0.6)


async def test_breakdown_context_understanding():
    extractor = IntentExtractor(
        detectors=[
            FixedDetector(Intent.EMAIL, 0.8, EmailParameters(recipient_name="yuki", body="hi there"))
        ]
    )
    plain = await extractor.extract_intent("anything")
    marked = await extractor.extract_intent("anything", [circle("A")])
    assert plain.confidence_breakdown.context_understanding == 0.5
    assert marked.confidence_breakdown.context_understanding == 0.8
    assert plain.confidence_breakdown.parameter_extraction == pytest.approx(0.7)


async def test_full_detector_set_on_contact_text():
    result = await IntentExtractor().extract_intent("Add tanaka tanaka@example.com to my address book")
    assert result.intent == Intent.CONTACT_MANAGEMENT
    assert isinstance(result.parameters, ContactParameters)
    assert result.confidence_breakdown.parameter_extraction == pytest.approx(1.0)


async def test_audit_event_records_every_detector(audit_sink, audit):
    extractor = IntentExtractor(
        audit=audit,
        detectors=[FixedDetector(Intent.EMAIL, 0.7), FixedDetector(Intent.SHOPPING, 0.1)],
    )
    await extractor.extract_intent("anything")
    await audit.drain()

    assert audit_sink.operations() == ["intent_detected"]
    event = audit_sink.events[0]
    assert event["entity_type"] == "intent_extraction"
    assert event["entity_id"] == "system"
    assert event["details"]["detected_intent"] == Intent.EMAIL
    assert [r["intent"] for r in event["details"]["all_results"]] == [Intent.EMAIL, Intent.SHOPPING]


async def test_audit_failure_does_not_break_extraction():
    audit = AuditRecorder(FakeAuditSink(fail=True))
    extractor = IntentExtractor(audit=audit, detectors=[FixedDetector(Intent.EMAIL, 0.7)])
    result = await extractor.extract_intent("anything")
    await audit.drain()
    assert result.intent == Intent.EMAIL


async def test_order_form_reply_with_reference_stays_shopping():
    result = await IntentExtractor().extract_intent(
        "Ref: FX-2025-000123\nOrder form\nA. Lux soap\nB. Kao soap\nD. Dove soap",
        [circle("D. Dove soap")],
    )
    assert result.intent == Intent.SHOPPING
    assert result.parameters.sub_intent == ShoppingSubIntent.PRODUCT_SELECTION
    assert result.parameters.selected_product_ids == ["D"]
    assert result.confidence == pytest.approx(0.95)
