"""Multi-detector intent extraction with confidence aggregation."""

from __future__ import annotations

from collections.abc import Sequence

from fax_engine.intent.ai_chat import AIChatDetector
from fax_engine.intent.base import IntentDetector
from fax_engine.intent.blocklist import BlocklistDetector
from fax_engine.intent.completeness import assess_parameter_completeness
from fax_engine.intent.contacts import ContactDetector
from fax_engine.intent.email import EmailDetector
from fax_engine.intent.payment import PaymentDetector
from fax_engine.intent.reply import ReplyDetector
from fax_engine.intent.shopping import ShoppingDetector
from fax_engine.models.domain import (
    AggregatedIntentResult,
    AlternativeIntent,
    ConfidenceBreakdown,
    InterpretationResult,
    RawIntentSignal,
    VisualAnnotation,
)
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import parameters_for, parameters_to_dict
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger
from fax_engine.observability.metrics import log_intent_metrics
from fax_engine.reference_ids import extract_reference_id

logger = get_logger("intent_extractor")

ALTERNATIVE_THRESHOLD = 0.3
MAX_ALTERNATIVES = 2

INTENT_REASONS = {
    Intent.EMAIL: "Contains email-related keywords or recipient information",
    Intent.SHOPPING: "Contains product or purchase-related keywords",
    Intent.AI_CHAT: "Contains question patterns or inquiry keywords",
    Intent.PAYMENT_REGISTRATION: "Contains payment or billing-related keywords",
    Intent.REPLY: "Contains circled options or reference to previous communication",
    Intent.BLOCKLIST_MANAGEMENT: "Contains blocking or spam-related keywords",
    Intent.CONTACT_MANAGEMENT: "Contains address book or contact-related keywords",
}


def default_detectors() -> list[IntentDetector]:
    """Detectors in evaluation order. Ties go to the earlier detector."""
    return [
        EmailDetector(),
        ShoppingDetector(),
        AIChatDetector(),
        PaymentDetector(),
        ReplyDetector(),
        BlocklistDetector(),
        ContactDetector(),
    ]


class IntentExtractor:
    def __init__(
        self,
        audit: AuditRecorder | None = None,
        detectors: Sequence[IntentDetector] | None = None,
    ) -> None:
        self._audit = audit
        self._detectors = list(detectors) if detectors is not None else default_detectors()

    async def extract_intent(
        self,
        raw_text: str,
        annotations: Sequence[VisualAnnotation] = (),
        existing_partial: InterpretationResult | None = None,
    ) -> AggregatedIntentResult:
        text = raw_text.lower()
        reference_id = extract_reference_id(text)
        if reference_id is None and existing_partial is not None:
            reference_id = existing_partial.reference_id

        raw = [self._run_detector(d, text, annotations, reference_id) for d in self._detectors]
        signals = [s.clamped() for s in raw]

        primary = signals[0]
        for signal in signals[1:]:
            if signal.confidence > primary.confidence:
                primary = signal

        alternatives = [
            AlternativeIntent(
                intent=s.intent,
                confidence=s.confidence,
                reason=INTENT_REASONS.get(s.intent, "Pattern match detected"),
            )
            for s in sorted(
                (
                    s
                    for s in signals
                    if s.intent != primary.intent and s.confidence > ALTERNATIVE_THRESHOLD
                ),
                key=lambda s: s.confidence,
                reverse=True,
            )
        ][:MAX_ALTERNATIVES]

        breakdown = ConfidenceBreakdown(
            overall=primary.confidence,
            intent_classification=primary.confidence,
            parameter_extraction=assess_parameter_completeness(primary.intent, primary.parameters),
            context_understanding=0.8 if annotations else 0.5,
        )

        log_intent_metrics(
            primary.intent,
            primary.confidence,
            breakdown.parameter_extraction,
            [a.intent for a in alternatives],
        )
        if self._audit is not None:
            self._audit.emit(
                "intent_extraction",
                "system",
                "intent_detected",
                {
                    "detected_intent": primary.intent,
                    "confidence": primary.confidence,
                    "confidence_breakdown": {
                        "overall": breakdown.overall,
                        "intent_classification": breakdown.intent_classification,
                        "parameter_extraction": breakdown.parameter_extraction,
                        "context_understanding": breakdown.context_understanding,
                    },
                    "alternative_intents": [a.intent for a in alternatives],
                    "all_results": [
                        {
                            "intent": s.intent,
                            "confidence": s.confidence,
                            "parameters": parameters_to_dict(s.parameters),
                        }
                        for s in raw
                    ],
                },
            )

        return AggregatedIntentResult(
            intent=primary.intent,
            confidence=primary.confidence,
            parameters=primary.parameters,
            confidence_breakdown=breakdown,
            alternative_intents=alternatives,
            raw_signals=signals,
        )

    @staticmethod
    def _run_detector(
        detector: IntentDetector,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None,
    ) -> RawIntentSignal:
        try:
            return detector.detect(text, annotations, reference_id)
        except Exception:
            logger.warning("detector_failed", intent=detector.intent, exc_info=True)
            return RawIntentSignal(detector.intent, 0.0, parameters_for(detector.intent))
