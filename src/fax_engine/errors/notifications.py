"""User-facing error faxes and operator alerts.

Both are best effort: a failure is logged and reported as ``False`` and
never raised into the error handler.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fax_engine.config.settings import Settings
from fax_engine.models.domain import ErrorContext
from fax_engine.models.enums import Stage
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger
from fax_engine.protocols.renderer import ResponseRenderer
from fax_engine.protocols.transport import FaxTransport
from fax_engine.reference_ids import generate_reference_id

logger = get_logger("error_notifications")

ERROR_TEMPLATE = "error"

STAGE_GUIDANCE: dict[Stage, tuple[str, list[str]]] = {
    Stage.INTERPRETATION: (
        "I had trouble reading your fax clearly.",
        [
            "Please write more clearly or use larger text",
            "Make sure your fax machine is producing clear images",
            "Try writing your request in simple, clear sentences",
            "Include specific details about what you need",
        ],
    ),
    Stage.AGENT_PROCESSING: (
        "I couldn't complete your request as written.",
        [
            "Please provide more specific details",
            "Check that email addresses are correct",
            "Make sure product names are spelled correctly",
            "Include all required information in your request",
        ],
    ),
}

DEFAULT_GUIDANCE = (
    "I encountered an issue processing your request.",
    [
        "Please try sending your request again",
        "Contact support if the problem continues",
    ],
)

QUEUED_MESSAGE = "We're experiencing high volume and your request is queued for processing."
QUEUED_ACTIONS = [
    "There is no need to send your fax again",
    "You will receive a reply fax as soon as it has been processed",
]

PAYMENT_FAILED_MESSAGE = (
    "Payment processing failed. Please check your payment method or try a "
    "different payment option."
)
PAYMENT_FAILED_ACTIONS = [
    "Check that your card details are correct",
    "Try paying at a convenience store instead",
    "Contact support if the problem continues",
]

APOLOGY_MESSAGE = "We're experiencing technical difficulties and couldn't process your request."


def guidance_for(stage: Stage) -> tuple[str, list[str]]:
    return STAGE_GUIDANCE.get(stage, DEFAULT_GUIDANCE)


class ErrorFaxNotifier:
    def __init__(
        self,
        renderer: ResponseRenderer,
        transport: FaxTransport,
        settings: Settings,
    ) -> None:
        self._renderer = renderer
        self._transport = transport
        self._settings = settings

    async def send_guidance(self, context: ErrorContext) -> bool:
        message, actions = guidance_for(context.stage)
        return await self.send(context, message, actions, kind="user_error")

    async def send_queued_notice(self, context: ErrorContext) -> bool:
        return await self.send(context, QUEUED_MESSAGE, QUEUED_ACTIONS, kind="queued")

    async def send_payment_guidance(self, context: ErrorContext) -> bool:
        return await self.send(
            context, PAYMENT_FAILED_MESSAGE, PAYMENT_FAILED_ACTIONS, kind="payment_failed"
        )

    async def send_apology(self, context: ErrorContext) -> bool:
        actions = [
            "Please try again in a few minutes",
            "If the problem continues, contact support:",
            f"Email: {self._settings.support_email}",
            f"Phone: {self._settings.support_phone}",
        ]
        return await self.send(context, APOLOGY_MESSAGE, actions, kind="system_error")

    async def send(
        self,
        context: ErrorContext,
        message: str,
        suggested_actions: list[str],
        kind: str,
    ) -> bool:
        if not context.from_number:
            logger.warning("error_fax_skipped_no_recipient", job_id=context.job_id, kind=kind)
            return False
        try:
            reference_id = generate_reference_id()
            pages = await self._renderer.generate(
                ERROR_TEMPLATE,
                {
                    "message": message,
                    "suggested_actions": suggested_actions,
                    "reply_fax_number": self._settings.service_fax_number,
                },
                reference_id,
            )
            await self._transport.send(context.from_number, pages, reference_id)
        except Exception:
            logger.error(
                "error_fax_failed",
                job_id=context.job_id,
                kind=kind,
                exc_info=True,
            )
            return False
        logger.info(
            "error_fax_sent",
            job_id=context.job_id,
            kind=kind,
            stage=context.stage,
            reference_id=reference_id,
        )
        return True


class OperatorAlerter:
    """High-priority structured log record plus an audit entry.

    The log record is what a deployment routes to paging or chat.
    """

    def __init__(self, audit: AuditRecorder | None = None) -> None:
        self._audit = audit

    async def alert(self, context: ErrorContext, message: str | None = None) -> bool:
        error = message or str(context.original_error)
        try:
            logger.critical(
                "operator_alert",
                priority="high",
                job_id=context.job_id,
                stage=context.stage,
                error=error,
                retry_count=context.retry_count,
                from_number=context.from_number,
            )
            if self._audit is not None:
                await self._audit.write(
                    "system_alert",
                    context.job_id,
                    "operator_alert",
                    {
                        "priority": "high",
                        "stage": context.stage,
                        "error": error,
                        "retry_count": context.retry_count,
                        "from_number": context.from_number,
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    },
                )
        except Exception:
            logger.error("operator_alert_failed", job_id=context.job_id, exc_info=True)
            return False
        return True
