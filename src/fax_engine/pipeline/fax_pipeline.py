"""Inbound fax pipeline orchestrator.

Download -> ResolveUser -> Interpret -> RecoverContext -> AgentProcess ->
GenerateResponse -> SendResponse -> [PostActions] -> Complete.

Stages run strictly in sequence. Every stage except context recovery goes
through ``_run_stage``, which consults the error handler on failure and
retries the stage at most once in-process. Further redelivery belongs to
the queue that feeds the job runner.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from fax_engine.context.recovery import ContextRecoveryResolver
from fax_engine.errors.classifier import classify_error, infer_stage
from fax_engine.errors.handler import FaxErrorHandler
from fax_engine.exceptions import CategorizedFailure, StageFailure
from fax_engine.models.domain import (
    ErrorContext,
    ErrorHandlingResult,
    FaxProcessingResult,
    SendResult,
    User,
)
from fax_engine.models.enums import JobStatus, Stage
from fax_engine.models.schemas import FaxJobData
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger
from fax_engine.observability.metrics import log_stage_latency
from fax_engine.observability.tracing import JobTrace
from fax_engine.pipeline.post_actions import PostActionRunner
from fax_engine.protocols.agent import ActionAgent
from fax_engine.protocols.job_store import JobStore
from fax_engine.protocols.media import MediaDownloader
from fax_engine.protocols.renderer import ResponseRenderer
from fax_engine.protocols.transport import FaxTransport
from fax_engine.protocols.user_store import UserStore
from fax_engine.protocols.vision import VisionInterpreter

logger = get_logger("fax_pipeline")

T = TypeVar("T")

ProgressCallback = Callable[[int], Any]


@dataclass
class FaxProcessingOptions:
    on_progress: ProgressCallback | None = None
    # Skip the download stage and use these bytes instead.
    image_bytes: bytes | None = None
    # Demo mode: nothing is sent and post-actions are skipped.
    skip_fax_send: bool = False


class FaxProcessingPipeline:
    def __init__(
        self,
        downloader: MediaDownloader,
        user_store: UserStore,
        interpreter: VisionInterpreter,
        context_resolver: ContextRecoveryResolver,
        agent: ActionAgent,
        renderer: ResponseRenderer,
        transport: FaxTransport,
        error_handler: FaxErrorHandler,
        job_store: JobStore,
        post_actions: PostActionRunner,
        audit: AuditRecorder | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._downloader = downloader
        self._users = user_store
        self._interpreter = interpreter
        self._context = context_resolver
        self._agent = agent
        self._renderer = renderer
        self._transport = transport
        self._errors = error_handler
        self._jobs = job_store
        self._post_actions = post_actions
        self._audit = audit
        self._sleep = sleep

    async def process_fax(
        self, job: FaxJobData, options: FaxProcessingOptions | None = None
    ) -> FaxProcessingResult:
        options = options or FaxProcessingOptions()
        trace = JobTrace(job.fax_id)
        user: User | None = None
        intent = None

        try:
            # STEP 1: Download
            await self._report(options, 10)
            if options.image_bytes is not None:
                image = options.image_bytes
            else:
                with trace.span("download"):
                    image = await self._run_stage(
                        Stage.DOWNLOAD, job, None,
                        lambda: self._downloader.download(job.media_url),
                    )

            # STEP 2: Resolve user (part of intake, reported as download)
            await self._report(options, 20)
            with trace.span("resolve_user"):
                user, is_new = await self._run_stage(
                    Stage.DOWNLOAD, job, None,
                    lambda: self._users.find_or_create(job.from_number),
                )
            if is_new:
                logger.info("user_created", user_id=user.id)
                self._emit("user", user.id, "user_created", {"phone_number": job.from_number})
            user_id = user.id

            # STEP 3: Interpret
            await self._report(options, 30)
            with trace.span("interpretation"):
                interpretation = await self._run_stage(
                    Stage.INTERPRETATION, job, user_id,
                    lambda: self._interpreter.interpret(image, user_id),
                )
            intent = interpretation.intent

            # STEP 4: Recover conversation context (never fails)
            await self._report(options, 40)
            with trace.span("context_recovery"):
                interpretation = await self._context.recover_context(interpretation, user_id)

            # STEP 5: Agent
            await self._report(options, 50)
            with trace.span("agent_processing", intent=str(intent)):
                agent_response = await self._run_stage(
                    Stage.AGENT_PROCESSING, job, user_id,
                    lambda: self._agent.process(interpretation, user_id, job.fax_id),
                )
            template = agent_response.fax_template

            # STEP 6: Render response
            await self._report(options, 70)
            with trace.span("response_generation"):
                pages = await self._run_stage(
                    Stage.RESPONSE_GENERATION, job, user_id,
                    lambda: self._renderer.generate(
                        template.type, template.context_data, template.reference_id
                    ),
                )

            # STEP 7: Send response
            await self._report(options, 90)
            if options.skip_fax_send:
                send_result = SendResult(fax_id=f"demo-{template.reference_id}")
                logger.info("fax_send_skipped", reference_id=template.reference_id)
            else:
                with trace.span("fax_sending"):
                    send_result = await self._run_stage(
                        Stage.FAX_SENDING, job, user_id,
                        lambda: self._transport.send(
                            job.from_number, pages, template.reference_id
                        ),
                    )

            # STEP 8: Post-actions
            if not options.skip_fax_send:
                try:
                    with trace.span("post_actions"):
                        await self._post_actions.run(user, job.from_number, interpretation)
                except Exception:
                    logger.warning("post_actions_failed", job_id=job.fax_id, exc_info=True)

            await self._report(options, 100)
        except Exception as e:
            return await self._fail(job, e, user, trace, intent)

        self._finish_trace(trace, success=True, intent=intent)
        logger.info(
            "fax_processed",
            job_id=job.fax_id,
            intent=intent,
            response_reference_id=template.reference_id,
            latency_ms=round(trace.elapsed_ms, 2),
        )
        return FaxProcessingResult(
            success=True,
            response_reference_id=template.reference_id,
            response_fax_id=send_result.fax_id,
            interpretation=interpretation,
            agent_response=agent_response,
        )

    async def _run_stage(
        self,
        stage: Stage,
        job: FaxJobData,
        user_id: str | None,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            return await operation()
        except Exception as first_error:
            context = ErrorContext(
                job_id=job.fax_id,
                stage=stage,
                original_error=first_error,
                from_number=job.from_number,
                user_id=user_id,
                retry_count=0,
            )
            decision = await self._dispatch(context)
            if not decision.should_retry:
                raise StageFailure(
                    stage, first_error, handled=True, error_type=decision.error_type
                ) from first_error

            delay_ms = decision.retry_delay_ms or 0
            logger.info("stage_retry", job_id=job.fax_id, stage=stage, delay_ms=delay_ms)
            await self._sleep(delay_ms / 1000)
            try:
                return await operation()
            except Exception as retry_error:
                raise StageFailure(stage, retry_error, retry_count=1) from retry_error

    async def _dispatch(
        self, context: ErrorContext, terminal: bool = False
    ) -> ErrorHandlingResult:
        error = context.original_error
        if isinstance(error, CategorizedFailure):
            return await self._errors.handle_specific_error(error.category, context, terminal)
        return await self._errors.handle_error(context, terminal)

    async def _fail(
        self,
        job: FaxJobData,
        error: Exception,
        user: User | None,
        trace: JobTrace,
        intent: str | None,
    ) -> FaxProcessingResult:
        if isinstance(error, StageFailure):
            stage, cause, retry_count = error.stage, error.cause, error.retry_count
            error_type = error.error_type
            handled = error.handled
        else:
            stage, cause, retry_count = infer_stage(str(error)), error, 0
            error_type = None
            handled = False

        logger.error(
            "fax_processing_failed",
            job_id=job.fax_id,
            stage=stage,
            error=str(cause),
            retry_count=retry_count,
            exc_info=cause,
        )

        if not handled:
            decision = await self._dispatch(
                ErrorContext(
                    job_id=job.fax_id,
                    stage=stage,
                    original_error=cause,
                    from_number=job.from_number,
                    user_id=user.id if user else None,
                    retry_count=retry_count,
                ),
                terminal=True,
            )
            error_type = decision.error_type
        if error_type is None:
            error_type = classify_error(cause, stage)

        try:
            await self._jobs.update_status(
                job.fax_id,
                JobStatus.FAILED,
                {
                    "error_message": str(cause),
                    "error_type": error_type,
                    "stage": stage,
                    "retry_count": retry_count,
                },
            )
        except Exception:
            logger.error("job_status_update_failed", job_id=job.fax_id, exc_info=True)

        self._finish_trace(trace, success=False, intent=intent)
        return FaxProcessingResult(success=False, error_message=str(cause))

    def _finish_trace(self, trace: JobTrace, success: bool, intent: str | None) -> None:
        for span in trace.spans:
            log_stage_latency(trace.job_id, span.name, span.duration_ms, span.failed)
        self._emit("fax_job", trace.job_id, "pipeline_trace", trace.to_record(success, intent))

    def _emit(self, entity_type: str, entity_id: str, operation: str, details: dict) -> None:
        if self._audit is not None:
            self._audit.emit(entity_type, entity_id, operation, details)

    @staticmethod
    async def _report(options: FaxProcessingOptions, percent: int) -> None:
        if options.on_progress is None:
            return
        try:
            outcome = options.on_progress(percent)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.warning("progress_callback_failed", percent=percent, exc_info=True)
