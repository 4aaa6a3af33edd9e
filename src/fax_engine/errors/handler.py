"""Applies the retry policy and performs the notification side effects."""

from __future__ import annotations

from fax_engine.errors.classifier import classify_error, retry_delay_ms, should_retry
from fax_engine.errors.notifications import ErrorFaxNotifier, OperatorAlerter
from fax_engine.models.domain import ErrorContext, ErrorHandlingResult
from fax_engine.models.enums import ErrorType, FailureCategory
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger
from fax_engine.observability.metrics import log_error_decision

logger = get_logger("error_handler")

VISION_QUOTA_RETRY_DELAY_MS = 60_000
CARRIER_RATE_LIMIT_RETRY_DELAY_MS = 30_000


class FaxErrorHandler:
    def __init__(
        self,
        notifier: ErrorFaxNotifier,
        alerter: OperatorAlerter,
        audit: AuditRecorder | None = None,
    ) -> None:
        self._notifier = notifier
        self._alerter = alerter
        self._audit = audit

    async def handle_error(
        self, context: ErrorContext, terminal: bool = False
    ) -> ErrorHandlingResult:
        """Classify a stage failure and notify whoever needs to know.

        ``terminal`` means the caller will not retry no matter what the
        policy says, so the exhausted-retry notifications fire now.
        """
        try:
            return await self._handle(context, terminal)
        except Exception as handling_error:
            logger.error("error_handler_failed", job_id=context.job_id, exc_info=True)
            await self._alerter.alert(
                context,
                f"Original: {context.original_error}; Handler: {handling_error}",
            )
            return ErrorHandlingResult(
                should_retry=False,
                user_notified=False,
                operator_alerted=True,
                error_fax_sent=False,
            )

    async def _handle(self, context: ErrorContext, terminal: bool) -> ErrorHandlingResult:
        if self._audit is not None:
            await self._audit.write(
                "fax_job",
                context.job_id,
                "processing_error",
                {
                    "stage": context.stage,
                    "error": str(context.original_error),
                    "retry_count": context.retry_count,
                    "from_number": context.from_number,
                },
            )

        error_type = classify_error(context.original_error, context.stage)
        retry = not terminal and should_retry(error_type, context.retry_count)
        log_error_decision(context.job_id, context.stage, error_type, retry, context.retry_count)

        user_notified = False
        operator_alerted = False
        error_fax_sent = False

        if error_type == ErrorType.USER_FACING:
            error_fax_sent = await self._notifier.send_guidance(context)
            user_notified = error_fax_sent
        elif error_type == ErrorType.SYSTEM_ERROR:
            operator_alerted = await self._alerter.alert(context)
            if not retry:
                error_fax_sent = await self._notifier.send_apology(context)
                user_notified = error_fax_sent
        elif error_type == ErrorType.TEMPORARY:
            if not retry:
                operator_alerted = await self._alerter.alert(context)
                error_fax_sent = await self._notifier.send_apology(context)
                user_notified = error_fax_sent
        elif error_type == ErrorType.CONFIGURATION:
            operator_alerted = await self._alerter.alert(context)
            error_fax_sent = await self._notifier.send_apology(context)
            user_notified = error_fax_sent

        return ErrorHandlingResult(
            should_retry=retry,
            user_notified=user_notified,
            operator_alerted=operator_alerted,
            error_fax_sent=error_fax_sent,
            retry_delay_ms=retry_delay_ms(context.retry_count) if retry else None,
            error_type=error_type,
        )

    async def handle_specific_error(
        self, category: FailureCategory, context: ErrorContext, terminal: bool = False
    ) -> ErrorHandlingResult:
        """Named policies for well-known external failures.

        These take precedence over message classification. Once the retry
        of a quota or rate-limit failure has also failed (``terminal``), the
        generic exhausted-retry behaviour applies instead.
        """
        logger.info(
            "specific_error",
            job_id=context.job_id,
            category=category,
            stage=context.stage,
            terminal=terminal,
        )
        if category == FailureCategory.VISION_API_QUOTA and not terminal:
            await self._alerter.alert(
                context, "Vision API quota exceeded - immediate attention required"
            )
            sent = await self._notifier.send_queued_notice(context)
            return ErrorHandlingResult(
                should_retry=True,
                user_notified=sent,
                operator_alerted=True,
                error_fax_sent=sent,
                retry_delay_ms=VISION_QUOTA_RETRY_DELAY_MS,
                error_type=ErrorType.TEMPORARY,
            )
        if category == FailureCategory.CARRIER_RATE_LIMIT and not terminal:
            return ErrorHandlingResult(
                should_retry=True,
                user_notified=False,
                operator_alerted=False,
                error_fax_sent=False,
                retry_delay_ms=CARRIER_RATE_LIMIT_RETRY_DELAY_MS,
                error_type=ErrorType.TEMPORARY,
            )
        if category == FailureCategory.STORAGE_FULL:
            await self._alerter.alert(context, "Storage full - immediate cleanup required")
            return ErrorHandlingResult(
                should_retry=False,
                user_notified=False,
                operator_alerted=True,
                error_fax_sent=False,
                error_type=ErrorType.SYSTEM_ERROR,
            )
        if category == FailureCategory.PAYMENT_FAILED:
            sent = await self._notifier.send_payment_guidance(context)
            return ErrorHandlingResult(
                should_retry=False,
                user_notified=sent,
                operator_alerted=False,
                error_fax_sent=sent,
                error_type=ErrorType.USER_FACING,
            )
        return await self.handle_error(context, terminal)
