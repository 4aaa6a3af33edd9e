"""Reattach a reply fax to the conversation it continues.

Resolution cascade, first match wins:

1. a context id already matched upstream (e.g. by the vision service),
2. an explicit reference id found on the fax, scoped to the user,
3. for replies and low-confidence interpretations, the user's recent
   contexts: a single candidate is attached, several ask for clarification.

Recovery never fails the pipeline. Any internal error leaves the
interpretation as it was.
"""

from __future__ import annotations

import dataclasses
from datetime import timedelta

from fax_engine.config.settings import Settings
from fax_engine.models.domain import (
    ContextRecoveryResult,
    ConversationContext,
    InterpretationResult,
)
from fax_engine.models.enums import Intent, RecoveryMethod
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger
from fax_engine.protocols.context_store import ContextStore

logger = get_logger("context_recovery")

REFERENCE_ID_CONFIDENCE = 0.95
TEMPORAL_PROXIMITY_CONFIDENCE = 0.7
AMBIGUITY_THRESHOLD = 0.7
ATTACHED_CONFIDENCE_FLOOR = 0.7

CLARIFICATION_QUESTION = (
    "I see you have multiple recent conversations. Please include the reference "
    "number (Ref: FX-YYYY-NNNNNN) from the original fax."
)


class ContextRecoveryResolver:
    def __init__(
        self,
        context_store: ContextStore,
        audit: AuditRecorder | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._store = context_store
        self._audit = audit
        days = settings.context_recovery_window_days if settings else 7
        self._window = timedelta(days=days)

    async def recover_context(
        self, interpretation: InterpretationResult, user_id: str
    ) -> InterpretationResult:
        try:
            return await self._recover(interpretation, user_id)
        except Exception:
            logger.warning("context_recovery_failed", user_id=user_id, exc_info=True)
            return interpretation

    async def _recover(
        self, interpretation: InterpretationResult, user_id: str
    ) -> InterpretationResult:
        recovery = interpretation.context_recovery

        if (
            interpretation.context is not None
            and recovery is not None
            and recovery.confidence >= ATTACHED_CONFIDENCE_FLOOR
        ):
            return interpretation

        # 1. Matched upstream
        if recovery is not None and recovery.matched_context_id:
            context = await self._store.find_by_id(recovery.matched_context_id)
            if context is not None and not context.is_expired():
                return self._attach(interpretation, context, recovery, user_id)

        # 2. Explicit reference id
        if interpretation.reference_id:
            context = await self._store.find_by_reference_id(interpretation.reference_id, user_id)
            if context is not None and not context.is_expired():
                result = ContextRecoveryResult(
                    method=RecoveryMethod.REFERENCE_ID,
                    confidence=REFERENCE_ID_CONFIDENCE,
                    matched_context_id=context.id,
                )
                return self._attach(interpretation, context, result, user_id)

        # 3. Temporal proximity
        if (
            interpretation.intent == Intent.REPLY
            or interpretation.confidence < AMBIGUITY_THRESHOLD
        ):
            candidates = [
                c
                for c in await self._store.find_recent_by_user(user_id, self._window)
                if not c.is_expired()
            ]
            if len(candidates) == 1:
                result = ContextRecoveryResult(
                    method=RecoveryMethod.TEMPORAL_PROXIMITY,
                    confidence=TEMPORAL_PROXIMITY_CONFIDENCE,
                    matched_context_id=candidates[0].id,
                )
                return self._attach(interpretation, candidates[0], result, user_id)
            if len(candidates) > 1:
                ids = [c.id for c in candidates]
                logger.info("context_ambiguous", user_id=user_id, candidates=len(ids))
                return dataclasses.replace(
                    interpretation,
                    context=None,
                    requires_clarification=True,
                    clarification_question=CLARIFICATION_QUESTION,
                    context_recovery=ContextRecoveryResult(
                        method=RecoveryMethod.NONE,
                        confidence=0.0,
                        ambiguous_matches=ids,
                    ),
                )

        return interpretation

    def _attach(
        self,
        interpretation: InterpretationResult,
        context: ConversationContext,
        recovery: ContextRecoveryResult,
        user_id: str,
    ) -> InterpretationResult:
        logger.info(
            "context_recovered",
            method=recovery.method,
            context_id=context.id,
            confidence=recovery.confidence,
        )
        if self._audit is not None:
            self._audit.emit(
                "context_recovery",
                user_id,
                "context_recovered",
                {
                    "method": recovery.method,
                    "confidence": recovery.confidence,
                    "context_id": context.id,
                    "reference_id": context.reference_id,
                },
            )
        return dataclasses.replace(interpretation, context=context, context_recovery=recovery)
