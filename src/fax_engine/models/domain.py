"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fax_engine.models.enums import (
    AnnotationType,
    ErrorType,
    Intent,
    RecoveryMethod,
    Stage,
)
from fax_engine.models.parameters import IntentParameters, ReplyParameters


def clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class VisualAnnotation:
    type: AnnotationType
    bounding_box: BoundingBox
    associated_text: str | None = None
    confidence: float = 1.0


@dataclass
class RawIntentSignal:
    intent: Intent
    confidence: float
    parameters: IntentParameters

    def clamped(self) -> RawIntentSignal:
        return RawIntentSignal(self.intent, clamp(self.confidence), self.parameters)


@dataclass
class AlternativeIntent:
    intent: Intent
    confidence: float
    reason: str


@dataclass
class ConfidenceBreakdown:
    overall: float
    intent_classification: float
    parameter_extraction: float
    context_understanding: float


@dataclass
class AggregatedIntentResult:
    intent: Intent
    confidence: float
    parameters: IntentParameters
    confidence_breakdown: ConfidenceBreakdown
    alternative_intents: list[AlternativeIntent] = field(default_factory=list)
    raw_signals: list[RawIntentSignal] = field(default_factory=list)


@dataclass
class ConversationContext:
    id: str
    user_id: str
    reference_id: str
    context_type: str
    context_data: dict[str, Any]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or datetime.now(timezone.utc))


@dataclass
class ContextRecoveryResult:
    method: RecoveryMethod
    confidence: float
    matched_context_id: str | None = None
    ambiguous_matches: list[str] | None = None


@dataclass
class InterpretationResult:
    intent: Intent
    confidence: float
    parameters: IntentParameters = field(default_factory=ReplyParameters)
    visual_annotations: list[VisualAnnotation] = field(default_factory=list)
    requires_clarification: bool = False
    clarification_question: str | None = None
    extracted_text: str | None = None
    reference_id: str | None = None
    context_recovery: ContextRecoveryResult | None = None
    context: ConversationContext | None = None


@dataclass
class User:
    id: str
    phone_number: str
    email_address: str | None = None
    name: str | None = None
    preferences: dict[str, Any] = field(default_factory=dict)


@dataclass
class FaxTemplate:
    type: str
    reference_id: str
    context_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentStep:
    tool_name: str
    success: bool
    input: dict[str, Any] = field(default_factory=dict)
    output: Any = None
    error: str | None = None


@dataclass
class AgentResponse:
    success: bool
    response_type: str  # "completion" | "selection_required" | "clarification"
    fax_template: FaxTemplate
    steps: list[AgentStep] = field(default_factory=list)
    user_message: str | None = None


@dataclass
class SendResult:
    fax_id: str


@dataclass
class ErrorContext:
    job_id: str
    stage: Stage
    original_error: Exception
    from_number: str | None = None
    user_id: str | None = None
    retry_count: int = 0


@dataclass
class ErrorHandlingResult:
    should_retry: bool
    user_notified: bool
    operator_alerted: bool
    error_fax_sent: bool
    retry_delay_ms: int | None = None
    error_type: ErrorType | None = None


@dataclass
class FaxProcessingResult:
    success: bool
    response_reference_id: str | None = None
    response_fax_id: str | None = None
    error_message: str | None = None
    interpretation: InterpretationResult | None = None
    agent_response: AgentResponse | None = None
